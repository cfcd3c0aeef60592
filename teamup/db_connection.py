# teamup/db_connection.py
import logging
from typing import Callable

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger("teamup_storage")


def get_db_engine(storage_url: str, storage_key: str = "") -> Engine:
    """
    Build the engine for the remote store. The access key is injected as the
    database password so it never has to live inside the url itself.
    """
    url = make_url(storage_url)
    if storage_key:
        url = url.set(password=storage_key)

    connect_args = {}
    if url.drivername.endswith("+pg8000"):
        # pg8000 supports 'timeout' in seconds
        connect_args["timeout"] = 10

    logger.info(f"[DB] Connecting to {url.render_as_string(hide_password=True)}")
    return create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)


def build_db_session_factory(engine: Engine) -> Callable[[], Session]:
    Session_ = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )

    def _factory() -> Session:
        return Session_()

    return _factory
