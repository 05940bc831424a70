from config import load_study_settings
from db.store import CardStore, SqliteCardStore
from models.settings import StudySettings
from utils.clock import Clock


def get_store() -> CardStore:
    """FastAPI dependency for the card store; tests override it."""
    return SqliteCardStore()


def get_clock() -> Clock:
    return Clock()


def get_settings() -> StudySettings:
    return load_study_settings()
