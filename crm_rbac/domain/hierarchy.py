"""
Role hierarchy table.

Ranks are used solely to compare relative privilege between two role kinds
when deciding whether one user may manage another. They never grant
permissions on their own.
"""

from types import MappingProxyType

from crm_rbac.domain.enums import RoleKind

ROLE_HIERARCHY: MappingProxyType[RoleKind, int] = MappingProxyType(
    {
        RoleKind.SUPER_ADMIN: 6,
        RoleKind.ADMIN: 5,
        RoleKind.MANAGER: 4,
        RoleKind.AGENT: 3,
        RoleKind.ENGINEER: 3,
        RoleKind.CUSTOMER: 1,
    }
)

# Role kinds each kind may hand out to other users
ASSIGNABLE_ROLES: MappingProxyType[RoleKind, tuple[RoleKind, ...]] = MappingProxyType(
    {
        RoleKind.SUPER_ADMIN: (
            RoleKind.ADMIN,
            RoleKind.MANAGER,
            RoleKind.AGENT,
            RoleKind.ENGINEER,
            RoleKind.CUSTOMER,
        ),
        RoleKind.ADMIN: (
            RoleKind.MANAGER,
            RoleKind.AGENT,
            RoleKind.ENGINEER,
            RoleKind.CUSTOMER,
        ),
        RoleKind.MANAGER: (RoleKind.AGENT, RoleKind.CUSTOMER),
        RoleKind.AGENT: (),
        RoleKind.ENGINEER: (),
        RoleKind.CUSTOMER: (),
    }
)

PLATFORM_ROLE_KIND = RoleKind.SUPER_ADMIN


def _check_exhaustive() -> None:
    for table_name, table in (("ROLE_HIERARCHY", ROLE_HIERARCHY), ("ASSIGNABLE_ROLES", ASSIGNABLE_ROLES)):
        missing = set(RoleKind) - set(table)
        if missing:
            raise RuntimeError(
                f"{table_name} is missing role kinds: {sorted(k.value for k in missing)}"
            )


_check_exhaustive()


def hierarchy_rank(kind: RoleKind) -> int:
    """Return the rank of a built-in role kind (higher = more privileged)"""
    return ROLE_HIERARCHY[kind]


def assignable_roles(kind: RoleKind) -> list[RoleKind]:
    """Return the role kinds a holder of `kind` may assign to others"""
    return list(ASSIGNABLE_ROLES[kind])
