"""
Recurrence Engine - Source Package

Materializes calendar occurrences of recurring bills and income from a
small persisted master record, and edits single occurrences without
corrupting the rest of the series.

DESIGN PRINCIPLES:
1. Master records are immutable values; every edit returns a new record
2. The current instant is always passed in, never read from a clock
3. Per-date exceptions are parsed into explicit slot states at the boundary
4. Inconsistencies are reported, never silently repaired
5. Storage is someone else's job
"""

__version__ = "1.0.0"
__author__ = "Recurrence Engine Team"
