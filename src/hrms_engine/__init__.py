"""HRMS engine: leave approval, attendance ledger and payroll summary."""

__version__ = "0.1.0"
