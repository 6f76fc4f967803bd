"""Multi-tenant role-based access control engine for the CRM platform."""

__version__ = "1.0.0"
