from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from . import settings


class Base(DeclarativeBase):
    """All pharmacy stock tables inherit from this."""
    pass


def make_engine(url: str | None = None) -> Engine:
    url = url or settings.DATABASE_URL
    kwargs = {"future": True, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


def init_db(engine: Engine) -> None:
    """Creates every table on `engine` (no-op for tables that already exist)."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
