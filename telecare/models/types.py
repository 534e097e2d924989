"""Dialect-aware column helpers shared by the model modules."""
import os

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.types import JSON as SA_JSON

from telecare.db.session import engine


def uuid_col_type():
    # Ids are stored as strings everywhere to avoid UUID vs varchar mismatches
    return String(36)


def json_col_type():
    # Tests run on SQLite, which cannot hold JSONB
    if os.getenv("FORCE_GENERIC_JSON", "").lower() in ("1", "true", "yes"):
        return SA_JSON
    if engine.dialect.name == "postgresql":
        return PG_JSONB
    return SA_JSON
