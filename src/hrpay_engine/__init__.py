"""HR payroll and leave engine."""

__version__ = "0.1.0"
