from __future__ import annotations

import os
from typing import Any

from sqlalchemy import (
    BigInteger,
    Column,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    create_engine,
    func,
)
from sqlalchemy.orm import declarative_base, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from backup_console.config import settings

Base = declarative_base()


class Database:
    Model = Base
    Column = Column
    Integer = Integer
    BigInteger = BigInteger
    String = String
    JSON = JSON
    ForeignKey = ForeignKey
    Index = Index
    func = func

    def __init__(self, database_url: str):
        options: dict[str, Any] = {"future": True}
        if database_url.startswith("sqlite"):
            # Sessions are used from the thread pool, not only the creating thread.
            options["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                options["poolclass"] = StaticPool
        self.engine = create_engine(database_url, **options)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, future=True)
        self.session = scoped_session(self.SessionLocal)

    def remove_session(self) -> None:
        self.session.remove()

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        self.session.remove()
        self.engine.dispose()


def _resolve_database_url() -> str:
    uri = settings.SQLALCHEMY_DATABASE_URI
    # Anchor relative sqlite paths to the project root
    if uri.startswith("sqlite:///") and not uri.startswith("sqlite:////") and uri != "sqlite:///:memory:":
        rel = uri.replace("sqlite:///", "", 1)
        if not os.path.isabs(rel):
            abs_path = os.path.join(settings.ROOT_PATH, rel).replace("\\", "/")
            return f"sqlite:///{abs_path}"
    return uri


db = Database(_resolve_database_url())
