"""Core logic: file classification, archive extraction, pending interactions.

No module in this package performs network I/O.
"""
