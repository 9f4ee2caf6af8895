from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./vocafluence.db"

_engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
	_engine_kwargs["connect_args"] = {"check_same_thread": False}
	# In-memory databases live inside a single connection
	if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
		_engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, future=True, **_engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Columns added after the first release; (table, column, DDL type)
_LATE_COLUMNS = [
	("users", "ai_requests_used", "INTEGER DEFAULT 0 NOT NULL"),
	("users", "ai_requests_limit", "INTEGER DEFAULT 1000 NOT NULL"),
	("users", "longest_streak", "INTEGER DEFAULT 0 NOT NULL"),
	("scripts", "category", "VARCHAR(100)"),
	("scripts", "description", "TEXT"),
	("activity_logs", "audio_mime_type", "VARCHAR(64)"),
	("oral_exam_sessions", "source", "VARCHAR(256)"),
]


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema() -> None:
	try:
		inspector = inspect(engine)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	with engine.begin() as conn:
		for table, column, ddl in _LATE_COLUMNS:
			if table not in tables:
				continue
			cols = {c["name"] for c in inspector.get_columns(table)}
			if column not in cols:
				conn.exec_driver_sql(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")
