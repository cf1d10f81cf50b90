"""Database utilities and setup."""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from learnsync.config import DATABASE_URL


def make_engine(url: str) -> Engine:
    """Create an engine, allowing SQLite connections to cross threads."""
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the given engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Create engine
engine = make_engine(DATABASE_URL)

# Create session factory
SessionLocal = make_session_factory(engine)


# Base class for models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None):
    """Initialize database (create all tables)."""
    # Import models so they register on Base.metadata
    import learnsync.models.db  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
