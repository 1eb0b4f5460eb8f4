from datetime import datetime

from sqlalchemy import Column, DateTime, JSON, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UiState(Base):
    """
    Persisted slice of a dashboard store.

    One row per store key (e.g. ``applicants-store``). ``value`` holds only
    the fields the store chooses to persist; loading flags never land here.
    """

    __tablename__ = "ui_state"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:  # pragma: no cover - repr utility
        return f"UiState(key={self.key}, updated_at={self.updated_at})"
