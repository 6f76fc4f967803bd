"""
Transaction-bound permission cache invalidation.

Cached permission sets must only ever reflect committed rows:
- reads in a session holding pending or flushed writes neither use nor fill the cache
- tenant keys are dropped once the transaction that changed them commits
- a rollback discards the queued invalidations
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session
from sqlalchemy.util import await_only

from crm_rbac.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from crm_rbac.infrastructure.cache.redis_cache import CacheService

logger = get_logger(__name__)

_PENDING_KEY = "pending_permission_invalidations"
_WRITES_KEY = "has_flushed_writes"

# Tenant marker meaning "every tenant's keys"
ALL_TENANTS = "*"


def _sync_session(session: AsyncSession | Session) -> Session:
    if isinstance(session, AsyncSession):
        return session.sync_session
    return session


def has_uncommitted_writes(session: AsyncSession | Session) -> bool:
    """Whether the session's open transaction holds changes not yet committed"""
    sync_session = _sync_session(session)
    return bool(
        sync_session.new
        or sync_session.dirty
        or sync_session.deleted
        or sync_session.info.get(_WRITES_KEY)
    )


def invalidate_on_commit(
    session: AsyncSession | Session, cache: CacheService | None, tenant_id: str
) -> None:
    """Queue dropping a tenant's cached permission sets until the session commits"""
    if cache is None:
        return
    pending: list[tuple[Any, str]] = _sync_session(session).info.setdefault(_PENDING_KEY, [])
    if not any(queued is cache and queued_tenant == tenant_id for queued, queued_tenant in pending):
        pending.append((cache, tenant_id))


@event.listens_for(Session, "after_flush")
def _mark_flushed_writes(session: Session, _flush_context: Any) -> None:
    session.info[_WRITES_KEY] = True


@event.listens_for(Session, "after_commit")
def _run_pending_invalidations(session: Session) -> None:
    session.info.pop(_WRITES_KEY, None)
    pending = session.info.pop(_PENDING_KEY, [])
    for cache, tenant_id in pending:
        # Commits of AsyncSession run inside SQLAlchemy's greenlet, so the
        # coroutine can be awaited from this sync hook
        if tenant_id == ALL_TENANTS:
            await_only(cache.invalidate_all())
        else:
            await_only(cache.invalidate_tenant(tenant_id))


@event.listens_for(Session, "after_rollback")
def _discard_pending_invalidations(session: Session) -> None:
    session.info.pop(_WRITES_KEY, None)
    dropped = session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.debug("Rollback discarded %d queued cache invalidation(s)", len(dropped))
