"""HRMS payroll desk: payroll computation and lifecycle for the HR backend."""

__version__ = "0.1.0"
