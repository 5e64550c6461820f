"""
Row-major numeric table with delimiter-based file ingestion.
"""

from .numtable import NumTable, MalformedRowError, load_table

__all__ = ["NumTable", "MalformedRowError", "load_table"]
