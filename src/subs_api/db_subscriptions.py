"""Database client for the `subscriptions` table.

This module provides:
- ensure_schema(): idempotently creates the `subscriptions` table (development/tests only)
- SubscriptionsClient: CRUD, listing and price sum over a pooled SQLAlchemy engine
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional

from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from subs_api import query
from subs_api.db import build_engine
from subs_api.errors import NoSuchRowError, RepositoryError
from subs_api.models import ListOpts, RangeOpts, SubFilter, Subscription
from subs_api.query import Statement
from subs_api.settings import Settings

logger = logging.getLogger(__name__)

# Statement deadlines, seconds.
ROW_TIMEOUT = 10
SCAN_TIMEOUT = 15


def ensure_schema(engine: Engine) -> None:
    """Create `subscriptions` table if it does not exist.

    WARNING: for development and tests only. Production schemas are managed
    outside this service.
    """
    create_table_sql = text(
        """
        CREATE TABLE IF NOT EXISTS subscriptions (
            id          SERIAL PRIMARY KEY,
            uid         UUID NOT NULL,
            name        TEXT NOT NULL,
            cost        INTEGER NOT NULL,
            created_at  DATE CHECK (EXTRACT(DAY FROM created_at) = 1) NOT NULL,
            expires     TIMESTAMPTZ
        );
        """
    )
    with engine.begin() as conn:
        conn.execute(create_table_sql)
    logger.debug("db_subscriptions: subscriptions schema ensured")


def _row_to_sub(row: Mapping[str, Any]) -> Subscription:
    return Subscription(
        id=row["id"],
        name=row["name"],
        uid=row["uid"],
        price=row["cost"],
        start=row["created_at"],
        expires=row["expires"],
    )


class SubscriptionsClient:
    """Executes subscription statements against a connection pool.

    Safe to share between request workers: the engine's pool does its own
    locking and every call checks a connection out only for its duration.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.ping()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SubscriptionsClient":
        return cls(build_engine(settings.sqlalchemy_database_url))

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise RepositoryError(f"ping error: {e}") from e

    @contextmanager
    def _transaction(self, timeout: int) -> Iterator[Connection]:
        with self.engine.begin() as conn:
            conn.execute(
                text("SELECT set_config('statement_timeout', :timeout, true)"),
                {"timeout": str(timeout * 1000)},
            )
            yield conn

    @staticmethod
    def _execute(conn: Connection, stmt: Statement):
        return conn.execute(text(stmt.sql), stmt.params)

    def add_sub(self, sub: Subscription) -> int:
        """Insert a subscription (its id is ignored) and return the generated id."""
        stmt = query.build_insert(sub)
        try:
            with self._transaction(ROW_TIMEOUT) as conn:
                return int(self._execute(conn, stmt).scalar_one())
        except SQLAlchemyError as e:
            logger.error(f"add_sub failed: {e}")
            raise RepositoryError(f"error inserting sub: {e}") from e

    def get_sub(self, sub_id: int) -> Subscription:
        """Return subscription by id.

        Raises:
            NoSuchRowError: If there is no row with this id
            RepositoryError: On any other store failure
        """
        stmt = query.build_get(sub_id)
        try:
            with self._transaction(ROW_TIMEOUT) as conn:
                row = self._execute(conn, stmt).mappings().first()
        except SQLAlchemyError as e:
            logger.error(f"get_sub({sub_id}) failed: {e}")
            raise RepositoryError(f"error getting subscription: {e}") from e
        if row is None:
            raise NoSuchRowError()
        try:
            return _row_to_sub({**row, "id": sub_id})
        except ValidationError as e:
            raise RepositoryError(f"error converting row: {e}") from e

    def update_sub(self, sub_id: int, sub: Subscription) -> None:
        """Replace all fields of row `sub_id`; NoSuchRowError if nothing was updated."""
        stmt = query.build_update(sub_id, sub)
        try:
            with self._transaction(ROW_TIMEOUT) as conn:
                affected = self._execute(conn, stmt).rowcount
        except SQLAlchemyError as e:
            logger.error(f"update_sub({sub_id}) failed: {e}")
            raise RepositoryError(f"error updating subscription: {e}") from e
        if affected == 0:
            raise NoSuchRowError()

    def delete_sub(self, sub_id: int) -> None:
        stmt = query.build_delete(sub_id)
        try:
            with self._transaction(ROW_TIMEOUT) as conn:
                affected = self._execute(conn, stmt).rowcount
        except SQLAlchemyError as e:
            logger.error(f"delete_sub({sub_id}) failed: {e}")
            raise RepositoryError(f"deleting sub error: {e}") from e
        if affected == 0:
            raise NoSuchRowError()

    def list_subs(self, opts: Optional[ListOpts] = None) -> List[Subscription]:
        """List subscriptions; a row that fails to map aborts the whole list."""
        try:
            stmt = query.build_list(opts or ListOpts())
        except ValueError as e:
            raise RepositoryError(f"building query error: {e}") from e
        try:
            with self._transaction(SCAN_TIMEOUT) as conn:
                rows = self._execute(conn, stmt).mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"list_subs failed: {e}")
            raise RepositoryError(f"getting subs list error: {e}") from e
        try:
            return [_row_to_sub(row) for row in rows]
        except ValidationError as e:
            raise RepositoryError(f"error converting rows: {e}") from e

    def price_sum(self, filter: Optional[SubFilter] = None, period: Optional[RangeOpts] = None) -> int:
        """Sum of `cost` over matching rows.

        Raises NoSuchRowError when nothing matches, so an empty selection is
        distinguishable from subscriptions that cost 0.
        """
        stmt = query.build_sum(filter, period)
        try:
            with self._transaction(SCAN_TIMEOUT) as conn:
                total = self._execute(conn, stmt).scalar()
        except SQLAlchemyError as e:
            logger.error(f"price_sum failed: {e}")
            raise RepositoryError(f"getting subs sum error: {e}") from e
        if total is None:
            raise NoSuchRowError()
        return int(total)
