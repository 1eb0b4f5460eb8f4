"""Thin repository helpers for persisted UI state.

These functions provide a small abstraction over SQLAlchemy sessions so the
dashboard stores can persist their state without knowing about tables.
"""
from typing import Any, Optional

from sqlalchemy.orm import Session

from .models import UiState


def load_state(session: Session, key: str) -> Optional[Any]:
    """Return the stored value for ``key`` or None."""
    row = session.get(UiState, key)
    return None if row is None else row.value


def save_state(session: Session, key: str, value: Any) -> UiState:
    """Insert or update the row for ``key``.

    Returns the persisted UiState instance.
    """
    row = session.get(UiState, key)
    if row is None:
        row = UiState(key=key, value=value)
        session.add(row)
    else:
        row.value = value

    session.commit()
    session.refresh(row)
    return row


def delete_state(session: Session, key: str) -> bool:
    row = session.get(UiState, key)
    if row is None:
        return False
    session.delete(row)
    session.commit()
    return True
