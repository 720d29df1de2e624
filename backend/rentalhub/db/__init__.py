import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from rentalhub.config import settings
from rentalhub.utils.log import get_logger

log = get_logger("db")


def make_engine(url: str):
    """
    Build an engine for `url`. SQLite connections are shared across the
    request worker threads and the expiry scheduler, so same-thread checks
    are turned off and writers wait for the database lock instead of failing
    immediately.
    """
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 15}
    return create_engine(url, future=True, echo=False, connect_args=connect_args)


DATABASE_URL = settings.DATABASE_URL
engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(reset: bool = False, bind=None):
    """
    Initialize DB schema.

    Behavior:
      - If `reset` is true or RESET_DB env var is set to 1/true/yes, drop & recreate tables.
      - Otherwise, leave existing tables in place.

    All model modules are imported here so metadata is populated.
    """
    bind = bind or engine

    # imported for their side effect on Base.metadata
    from rentalhub.models import product, reservation  # noqa: F401

    env_reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")
    if reset or env_reset:
        log.info("Resetting database tables")
        Base.metadata.drop_all(bind=bind)

    Base.metadata.create_all(bind=bind)
    log.debug("Database initialized at %s", bind.url)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
