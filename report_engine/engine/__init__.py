"""Pure computation over already-fetched records.

Nothing in this package performs I/O.
"""
