from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from .config import settings
import logging

# Set up logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

engine_options = {"pool_pre_ping": True, "echo": settings.DB_ECHO}
if not settings.DATABASE_URL.startswith("sqlite"):
    engine_options.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )

engine = create_async_engine(settings.DATABASE_URL, **engine_options)

# Session factory
def get_sessionmaker(bind=None):
    logger.debug("Creating sessionmaker")
    return async_sessionmaker(
        bind=bind or engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

AsyncSessionLocal = get_sessionmaker()

Base = declarative_base()

# Utility function
def get_engine():
    return engine
