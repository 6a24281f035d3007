# plotreport/db/session.py
import os
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from plotreport.core.config import settings
from plotreport.db.base import Base  # <- use the single Base


def _make_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    database = make_url(url).database
    if not database or database == ":memory:":
        # one shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    elif os.path.dirname(database):
        os.makedirs(os.path.dirname(database), exist_ok=True)
    return create_engine(url, **kwargs)


engine = _make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_models():
    # Import ALL model modules so metadata is populated before create_all
    from plotreport.models import plot_report  # noqa: F401
    Base.metadata.create_all(bind=engine)
