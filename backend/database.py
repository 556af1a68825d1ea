import os
import logging
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

# Database URL with fallback to sqlite for development
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./energy_audit.db")

# Convert postgres:// to postgresql:// for SQLAlchemy compatibility
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)


def to_async_url(url: str) -> str:
    """Add the async driver suffix expected by create_async_engine"""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def get_database_config(url: str = DATABASE_URL):
    """Get engine configuration with connection pooling settings"""
    is_production = os.getenv("ENV") == "production"
    is_postgres = url.startswith(("postgres://", "postgresql://"))

    base_config = {
        "echo": False,
        "pool_pre_ping": True,  # Validate connections before use
    }

    if is_postgres:
        base_config.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_timeout": 30,
            "pool_recycle": 3600,
            "connect_args": {
                "ssl": "require" if is_production else "prefer",
                "server_settings": {"application_name": "energy_audit_async"},
            },
        })
        logger.info(f"Database: PostgreSQL configured (production={is_production})")
    else:
        base_config.update({
            "connect_args": {"check_same_thread": False}
        })
        logger.info("Database: SQLite configured")

    return base_config


async_engine = create_async_engine(to_async_url(DATABASE_URL), **get_database_config())

AsyncSessionLocal = async_sessionmaker(
    async_engine, class_=AsyncSession, expire_on_commit=False
)


async def create_db_and_tables(engine=async_engine):
    """Create database tables for every registered SQLModel table"""
    # Import models so their tables are registered on the metadata
    import models.db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

