"""
Database schema for the ledger store.

This module contains the PostgreSQL schema definition and related utilities.
"""
from pathlib import Path

# Path to schema file
SCHEMA_FILE = Path(__file__).parent / "schema.sql"


def get_schema_sql(schema: str = "jewel_ledger") -> str:
    """Get the full schema SQL for a schema name."""
    return SCHEMA_FILE.read_text(encoding="utf-8").replace("{schema}", schema)
