from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from mediasync.config.postgres_settings import MediaDbSettings
from mediasync.persistence.tables import Base


class DatabaseManager:

    def __init__(self, url: str, **engine_kwargs: Any):

        self.engine = create_engine(url, **engine_kwargs)
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, config: MediaDbSettings) -> "DatabaseManager":
        return cls(config.url)

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Iterator[Session]:

        session = self.session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
