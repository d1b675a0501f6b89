from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from ..app.config import Config
from ..utils.logger import get_logger

logger = get_logger()

# Create a base class for our models
Base = declarative_base()


def make_engine(database_url: str = None):
    """Build an engine; in-memory SQLite shares one connection across threads."""
    url = database_url or Config.DATABASE_URL
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


# Create the SQLAlchemy engine
engine = make_engine()

# Create a configured "Session" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_session_factory(bind):
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


def create_tables(bind=None):
    """Create all tables in the database."""
    # Import all models here before calling create_all
    # This ensures they are registered with the Base metadata
    from .models import Product, Variant  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
    logger.info("[CATALOG] Database tables ready")


if __name__ == "__main__":
    create_tables()
