"""HTTP adapter for the HRMS engine."""
