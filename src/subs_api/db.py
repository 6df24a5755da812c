"""Engine (connection pool) construction."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

# Seconds to wait for a pooled connection and for a new TCP connection.
POOL_TIMEOUT = 5
CONNECT_TIMEOUT = 5


def normalize_database_url(database_url: str) -> str:
    """Force the psycopg2 driver for plain postgres URLs."""
    if "psycopg://" in database_url:
        return database_url.replace("psycopg://", "psycopg2://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg2://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+psycopg2://", 1)
    return database_url


def build_engine(database_url: str) -> Engine:
    return create_engine(
        normalize_database_url(database_url),
        pool_pre_ping=True,
        pool_timeout=POOL_TIMEOUT,
        connect_args={"connect_timeout": CONNECT_TIMEOUT},
    )
