from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .config import Settings


settings = Settings()

# Synchronous SQLAlchemy engine; psycopg for PostgreSQL, sqlite for local runs
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, future=True, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
