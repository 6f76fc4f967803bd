"""
Seed the permission catalog, the platform role and tenant system roles.

Usage:
    python -m scripts.seed_rbac techcorp globex

Safe to re-run: only missing permissions and roles are created.
"""
import argparse
import asyncio

from crm_rbac.application.services import PlatformInitializationService
from crm_rbac.infrastructure.persistence.database import AsyncSessionLocal, Base, engine
from crm_rbac.infrastructure.persistence import models  # noqa: F401 - registers tables
from crm_rbac.shared.telemetry.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def seed(tenant_ids: list[str], create_tables: bool = False):
    """Initialize the platform, then each tenant, in one transaction"""
    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal.begin() as db:
        initializer = PlatformInitializationService(db)

        result = await initializer.initialize_platform()
        print(
            f"📦 Platform: {result['permissions_created']} permission(s), "
            f"{result['roles_created']} role(s) created"
        )

        for tenant_id in tenant_ids:
            result = await initializer.initialize_tenant(tenant_id)
            print(f"  ✓ Tenant {tenant_id}: {result['roles_created']} system role(s) created")

    print("✅ RBAC seeding completed successfully!")


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("tenant_ids", nargs="*", help="Tenants to initialize")
    parser.add_argument(
        "--create-tables", action="store_true", help="Create missing tables first (development only)"
    )
    args = parser.parse_args()

    setup_logging()
    logger.info("Seeding RBAC data for %d tenant(s)", len(args.tenant_ids))
    asyncio.run(seed(args.tenant_ids, create_tables=args.create_tables))


if __name__ == "__main__":
    main()
