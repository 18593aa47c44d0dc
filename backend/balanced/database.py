from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool

from .config import settings


def _make_engine(url: str):
    # SQLite (local runs and tests): connections shared across request threads
    if url.startswith("sqlite"):
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    # dev: no pool, the connection is closed after every request
    if settings.APP_ENV.lower() != "prod":
        return create_engine(
            url,
            future=True,
            pool_pre_ping=True,
            poolclass=NullPool,
        )

    # prod: small, conservative pool
    return create_engine(
        url,
        future=True,
        pool_pre_ping=True,
        pool_size=2,
        max_overflow=2,
        pool_recycle=1800,
    )


engine = _make_engine(settings.DB_URL)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)

Base = declarative_base()


def init_db(bind=None) -> None:
    # models must be imported so their tables are registered on Base.metadata
    from .models import availability, booking, user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()  # always hand the connection back
