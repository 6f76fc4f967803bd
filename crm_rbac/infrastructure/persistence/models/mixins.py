"""
SQLAlchemy mixins for common model patterns.

These mixins provide reusable column definitions to keep the RBAC
tables consistent.

    - CuidMixin: CUID string primary key
    - TenantMixin: Owning tenant id (or the platform sentinel)
    - TimestampMixin: created_at / updated_at
"""
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from crm_rbac.shared.utils import generate_cuid, utc_now


class CuidMixin:
    """
    Mixin for models using CUID as primary key.

    Usage:
        class MyModel(CuidMixin, Base):
            __tablename__ = "my_model"
    """

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class TenantMixin:
    """
    Mixin for tenant-scoped models.

    Tenants are owned by an external tenant service, so tenant_id is an
    indexed plain string rather than a foreign key.
    """

    @declared_attr
    def tenant_id(cls) -> Mapped[str]:
        return mapped_column(String, nullable=False, index=True)


class TimestampMixin:
    """
    Mixin for timestamp tracking.

    Values are set client-side so they are available right after flush
    without a refresh round-trip; the server default covers raw inserts.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            default=utc_now,
            server_default=func.now(),
            nullable=False,
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            default=utc_now,
            onupdate=utc_now,
            server_default=func.now(),
            nullable=False,
        )


class MultiTenantModel(CuidMixin, TenantMixin, TimestampMixin):
    """CUID id + tenant id + timestamps."""

    pass
