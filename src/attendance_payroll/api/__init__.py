"""HTTP API for the attendance payroll engine."""
