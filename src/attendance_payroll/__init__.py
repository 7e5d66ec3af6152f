"""Attendance payroll engine.

Turns attendance and overtime facts into per-employee payroll records inside
payroll periods that move through open, processing, locked and closed.
"""

__version__ = "1.0.0"
