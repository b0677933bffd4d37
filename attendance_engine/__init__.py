"""Tenant-scoped scheduling and attendance engine."""

__version__ = "1.0.0"
