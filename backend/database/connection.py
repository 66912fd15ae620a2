# database/connection.py
import os
import sqlite3
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from urllib.parse import quote_plus

load_dotenv()


def build_database_url() -> str:
    """DATABASE_URL wins, then a PostgreSQL URL from DB_* parts, then local SQLite."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    db_host = os.getenv("DB_HOST")
    if db_host:
        db_user = os.getenv("DB_USER", "postgres")
        # URL ENCODE PASSWORD
        encoded_pass = quote_plus(os.getenv("DB_PASS", ""))
        db_port = os.getenv("DB_PORT", "5432")
        db_name = os.getenv("DB_NAME", "hospital_management")
        return f"postgresql://{db_user}:{encoded_pass}@{db_host}:{db_port}/{db_name}"

    return "sqlite:///./hospital_management.db"


DATABASE_URL = build_database_url()
DB_ECHO = os.getenv("DB_ECHO", "false").lower() in ("1", "true", "yes")
DB_ISOLATION_LEVEL = os.getenv("DB_ISOLATION_LEVEL")


def make_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    options = {"echo": DB_ECHO}
    if DB_ISOLATION_LEVEL:
        options["isolation_level"] = DB_ISOLATION_LEVEL
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    options.update(kwargs)
    return create_engine(url, **options)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores REFERENCES clauses unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
