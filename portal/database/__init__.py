"""Database models and session management."""
from .engine import SessionLocal, init_db, DB_PATH
from .models import UiState, Base
from .repository import load_state, save_state, delete_state

__all__ = [
    "SessionLocal",
    "init_db",
    "DB_PATH",
    "UiState",
    "Base",
    "load_state",
    "save_state",
    "delete_state",
]
