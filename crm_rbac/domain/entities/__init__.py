"""Domain entities."""

from crm_rbac.domain.entities.principal import Principal

__all__ = ["Principal"]
