"""
In-memory stand-in for the Supabase client used by the repository tests.

Implements the subset of the postgrest builder chain the repositories use:
select/insert/update/delete, eq/gt/gte/lte/ilike/is_/in_/or_ filters,
order and limit. Rows are plain dicts keyed by table name.

Failure injection:
- `fail_on(table, op)` makes the next matching request raise APIError.
- `before(table, op, hook)` runs `hook(store)` once before the next matching
  request executes (used to simulate a concurrent writer).
- `always_before(table, op, hook)` does the same before every matching request.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from postgrest.exceptions import APIError

Row = Dict[str, Any]
Predicate = Callable[[Row], bool]


@dataclass
class FakeResponse:
    data: List[Row]
    count: Optional[int] = None


def _ilike(pattern: str) -> "re.Pattern[str]":
    parts = [re.escape(part) for part in pattern.split("%")]
    return re.compile("^" + ".*".join(parts) + "$", re.IGNORECASE | re.DOTALL)


def _parse_or(expression: str) -> Predicate:
    conditions: List[Predicate] = []
    for clause in expression.split(","):
        column, op, value = clause.split(".", 2)
        if op == "eq":
            conditions.append(lambda row, c=column, v=value: str(row.get(c)) == v and row.get(c) is not None)
        elif op == "is" and value == "null":
            conditions.append(lambda row, c=column: row.get(c) is None)
        else:
            raise NotImplementedError(f"or_ operator not supported: {op}")
    return lambda row: any(condition(row) for condition in conditions)


class FakeQuery:
    def __init__(self, store: "FakeSupabase", table: str) -> None:
        self._store = store
        self._table = table
        self._op = "select"
        self._columns = "*"
        self._payload: Any = None
        self._filters: List[Predicate] = []
        self._order: List[Tuple[str, bool]] = []
        self._limit: Optional[int] = None

    # Operations -------------------------------------------------------------

    def select(self, columns: str = "*", **_: Any) -> "FakeQuery":
        self._op = "select"
        self._columns = columns
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: Row) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    # Filters ----------------------------------------------------------------

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) == value)
        return self

    def gt(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) > value)
        return self

    def gte(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def lte(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def ilike(self, column: str, pattern: str) -> "FakeQuery":
        regex = _ilike(pattern)
        self._filters.append(lambda row: row.get(column) is not None and bool(regex.match(str(row[column]))))
        return self

    def is_(self, column: str, value: str) -> "FakeQuery":
        assert value == "null"
        self._filters.append(lambda row: row.get(column) is None)
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def or_(self, expression: str) -> "FakeQuery":
        self._filters.append(_parse_or(expression))
        return self

    def order(self, column: str, *, desc: bool = False, **_: Any) -> "FakeQuery":
        self._order.append((column, desc))
        return self

    def limit(self, size: int) -> "FakeQuery":
        self._limit = size
        return self

    # Execution --------------------------------------------------------------

    def _matches(self, row: Row) -> bool:
        return all(predicate(row) for predicate in self._filters)

    def _project(self, row: Row) -> Row:
        if self._columns.strip() == "*":
            return copy.deepcopy(row)
        columns = [column.strip() for column in self._columns.split(",")]
        return {column: copy.deepcopy(row.get(column)) for column in columns}

    def execute(self) -> FakeResponse:
        self._store._run_hooks(self._table, self._op)
        self._store._maybe_fail(self._table, self._op)
        self._store.calls.append((self._table, self._op))

        rows = self._store.tables.setdefault(self._table, [])

        if self._op == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for payload in payloads:
                row = dict(payload)
                row.setdefault("id", str(uuid4()))
                row.setdefault("created_at", self._store.next_timestamp())
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(data=inserted)

        matched = [row for row in rows if self._matches(row)]

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return FakeResponse(data=[copy.deepcopy(row) for row in matched])

        if self._op == "delete":
            self._store.tables[self._table] = [row for row in rows if row not in matched]
            return FakeResponse(data=[copy.deepcopy(row) for row in matched])

        for column, desc in reversed(self._order):
            matched.sort(key=lambda row: (row.get(column) is None, row.get(column) or 0), reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return FakeResponse(data=[self._project(row) for row in matched])


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: Dict[str, List[Row]] = {}
        self.calls: List[Tuple[str, str]] = []
        self._failures: Dict[Tuple[str, str], str] = {}
        self._hooks: Dict[Tuple[str, str], List[Callable[["FakeSupabase"], None]]] = {}
        self._standing_hooks: Dict[Tuple[str, str], List[Callable[["FakeSupabase"], None]]] = {}
        self._clock = datetime.now(timezone.utc)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    # Test helpers -----------------------------------------------------------

    def next_timestamp(self) -> str:
        self._clock += timedelta(milliseconds=1)
        return self._clock.isoformat()

    def seed(self, table: str, **row: Any) -> Row:
        row.setdefault("id", str(uuid4()))
        row.setdefault("created_at", self.next_timestamp())
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table: str, **where: Any) -> List[Row]:
        return [
            row for row in self.tables.get(table, [])
            if all(row.get(column) == value for column, value in where.items())
        ]

    def fail_on(self, table: str, op: str, message: str = "simulated failure") -> None:
        self._failures[(table, op)] = message

    def before(self, table: str, op: str, hook: Callable[["FakeSupabase"], None]) -> None:
        self._hooks.setdefault((table, op), []).append(hook)

    def always_before(self, table: str, op: str, hook: Callable[["FakeSupabase"], None]) -> None:
        self._standing_hooks.setdefault((table, op), []).append(hook)

    def writes(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[1] != "select"]

    def _maybe_fail(self, table: str, op: str) -> None:
        message = self._failures.pop((table, op), None)
        if message is not None:
            raise APIError({"message": message, "code": "XX000", "hint": None, "details": None})

    def _run_hooks(self, table: str, op: str) -> None:
        hooks = self._hooks.pop((table, op), []) + self._standing_hooks.get((table, op), [])
        for hook in hooks:
            hook(self)
