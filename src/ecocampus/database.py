"""Database setup for the local SQL table backend."""

from sqlalchemy import Engine
from sqlmodel import SQLModel, create_engine

from ecocampus.config import settings

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=False,
    connect_args={"check_same_thread": False},
)


def init_db(bind: Engine | None = None) -> None:
    """Create all tables."""
    # Import rows to register them with SQLModel before create_all()
    import ecocampus.records.tables  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
