"""
Principal domain entity.

The caller's identity/tenant/role triple, supplied by the authentication
layer on every call. The engine never looks up "the current user" itself.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from crm_rbac.domain.enums import RoleKind
from crm_rbac.domain.exceptions import UnauthorizedException


@dataclass(frozen=True)
class Principal:
    """
    Immutable caller identity.

    A principal carries either a concrete `role_id` (custom or system role)
    or a built-in `role_kind`, or both. When only the kind is given, the
    engine resolves it to the tenant's system role of that kind.
    """

    user_id: str
    tenant_id: str
    role_kind: RoleKind | None = None
    role_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    def __post_init__(self):
        if not isinstance(self.user_id, str) or not self.user_id:
            raise UnauthorizedException("Principal user_id must be a non-empty string")
        if not isinstance(self.tenant_id, str) or not self.tenant_id:
            raise UnauthorizedException("Principal tenant_id must be a non-empty string")
        if self.role_kind is None and not self.role_id:
            raise UnauthorizedException("Principal must carry a role_kind or a role_id")
        if self.role_kind is not None and not isinstance(self.role_kind, RoleKind):
            raise UnauthorizedException(f"Unknown role kind: {self.role_kind!r}")

    @property
    def role_ref(self) -> str:
        """Stable reference to the principal's role, used as a cache key component"""
        if self.role_id:
            return self.role_id
        assert self.role_kind is not None
        return f"kind:{self.role_kind.value}"

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any] | None) -> "Principal":
        """
        Build a principal from token-style claims.

        Accepts `sub` or `user_id`, `tenant_id`, `role` or `role_kind`,
        `role_id`, and optional `ip_address` / `user_agent`.

        Raises:
            UnauthorizedException: If the claims are missing or malformed
        """
        if not claims:
            raise UnauthorizedException("No principal presented")

        raw_kind = claims.get("role_kind", claims.get("role"))
        kind: RoleKind | None = None
        if raw_kind is not None:
            try:
                kind = RoleKind(raw_kind)
            except ValueError:
                raise UnauthorizedException(f"Unknown role kind: {raw_kind!r}") from None

        return cls(
            user_id=claims.get("user_id") or claims.get("sub") or "",
            tenant_id=claims.get("tenant_id") or "",
            role_kind=kind,
            role_id=claims.get("role_id"),
            ip_address=claims.get("ip_address"),
            user_agent=claims.get("user_agent"),
        )
