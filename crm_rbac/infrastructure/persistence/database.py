from sqlalchemy.ext.asyncio import (AsyncSession, async_sessionmaker,
                                    create_async_engine)
from sqlalchemy.orm import DeclarativeBase

from crm_rbac.infrastructure.config.settings import get_settings

settings = get_settings()

_is_postgres = "postgresql" in settings.database_url

# Create engine once at module level (not with lru_cache)
engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
    **(
        {
            "pool_size": 20,
            "max_overflow": 30,
            "pool_recycle": 3600,
            "connect_args": {
                "server_settings": {"jit": "off"},
                "command_timeout": 60,
            },
        }
        if _is_postgres
        else {}
    ),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)


# Modern SQLAlchemy 2.0 pattern
class Base(DeclarativeBase):
    """Base class for all database models"""

    pass
