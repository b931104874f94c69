"""Components of the commitment tree engine: hashing, storage and Patricia tries."""
