"""
Commitment tree engine for replaying Starknet blocks in the Cairo OS.

Builds update trees from storage modifications, guesses the descents a trie
walk can skip, and assembles the commitment facts consumed by the OS.
"""
