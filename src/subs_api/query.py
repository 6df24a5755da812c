"""SQL composition for the `subscriptions` table.

Every statement is returned as a `Statement`: SQL text with numbered binds
(`:p1`, `:p2`, ...) and the ordered tuple of values for them. Caller input
only ever reaches the SQL text through binds; identifiers come from
`SortColumn` and `SubFilter`, never from free text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from subs_api.models import ListOpts, RangeOpts, SubFilter, Subscription


TABLE = "subscriptions"
LIST_COLUMNS = "id, name, uid, cost, created_at, expires"


@dataclass(frozen=True)
class Statement:
    sql: str
    args: Tuple[Any, ...] = ()

    @property
    def params(self) -> Dict[str, Any]:
        """Bind mapping for `sqlalchemy.text()`."""
        return {f"p{i}": value for i, value in enumerate(self.args, start=1)}


class _Binds:
    def __init__(self) -> None:
        self.values: List[Any] = []

    def add(self, value: Any) -> str:
        self.values.append(value)
        return f":p{len(self.values)}"

    def add_uid(self, value: Any) -> str:
        return f"CAST({self.add(str(value))} AS uuid)"


def _where(binds: _Binds, filter: Optional[SubFilter]) -> List[str]:
    clauses: List[str] = []
    if filter is None:
        return clauses
    for column, value in filter.predicates():
        placeholder = binds.add_uid(value) if column == "uid" else binds.add(value)
        clauses.append(f"{column} = {placeholder}")
    return clauses


def build_list(opts: ListOpts) -> Statement:
    """SELECT for listing with optional filter, order and limit; offset always."""
    if opts.limit < 0:
        raise ValueError(f"limit must be >= 0, got {opts.limit}")
    if opts.offset < 0:
        raise ValueError(f"offset must be >= 0, got {opts.offset}")

    binds = _Binds()
    parts = [f"SELECT {LIST_COLUMNS} FROM {TABLE}"]
    where = _where(binds, opts.filter)
    if where:
        parts.append("WHERE " + " AND ".join(where))
    if opts.order is not None:
        parts.append(f"ORDER BY {opts.order.column} ASC")
    if opts.limit:
        parts.append(f"LIMIT {binds.add(opts.limit)}")
    parts.append(f"OFFSET {binds.add(opts.offset)}")
    return Statement(" ".join(parts), tuple(binds.values))


def build_sum(filter: Optional[SubFilter], period: Optional[RangeOpts] = None) -> Statement:
    """SELECT SUM(cost) with the listing filter and an optional month range."""
    binds = _Binds()
    where = _where(binds, filter)
    if period is not None and period.is_bounded:
        where.append(f"created_at >= {binds.add(period.start)}")
        where.append(f"created_at <= {binds.add(period.end)}")
    sql = f"SELECT SUM(cost) FROM {TABLE}"
    if where:
        sql += " WHERE " + " AND ".join(where)
    return Statement(sql, tuple(binds.values))


def _row_values(binds: _Binds, sub: Subscription) -> List[str]:
    return [
        binds.add_uid(sub.uid),
        binds.add(sub.name),
        binds.add(sub.price),
        binds.add(sub.start),
        binds.add(sub.expires),
    ]


def build_insert(sub: Subscription) -> Statement:
    binds = _Binds()
    values = ", ".join(_row_values(binds, sub))
    sql = (
        f"INSERT INTO {TABLE} (uid, name, cost, created_at, expires) "
        f"VALUES ({values}) RETURNING id"
    )
    return Statement(sql, tuple(binds.values))


def build_get(sub_id: int) -> Statement:
    binds = _Binds()
    sql = f"SELECT uid, name, cost, created_at, expires FROM {TABLE} WHERE id = {binds.add(sub_id)}"
    return Statement(sql, tuple(binds.values))


def build_update(sub_id: int, sub: Subscription) -> Statement:
    binds = _Binds()
    uid, name, cost, created_at, expires = _row_values(binds, sub)
    sql = (
        f"UPDATE {TABLE} SET uid = {uid}, name = {name}, cost = {cost}, "
        f"created_at = {created_at}, expires = {expires} "
        f"WHERE id = {binds.add(sub_id)}"
    )
    return Statement(sql, tuple(binds.values))


def build_delete(sub_id: int) -> Statement:
    binds = _Binds()
    return Statement(f"DELETE FROM {TABLE} WHERE id = {binds.add(sub_id)}", tuple(binds.values))
