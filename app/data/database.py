# app/data/database.py
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.utils.settings import DATABASE_URL


def engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        #baza w pamieci musi zyc na jednym polaczeniu
        if ":memory:" in url or url.split("://", 1)[-1] in ("", "/"):
            options["poolclass"] = StaticPool
        return options
    return {"pool_pre_ping": True}


engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine)
Base = declarative_base()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Commit przy normalnym wyjsciu, rollback przy kazdym wyjatku.
    Logika biznesowa nie wola commit/rollback recznie.
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise


def init_db(bind=None):
    #import modeli rejestruje tabele w Base.metadata
    import app.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
