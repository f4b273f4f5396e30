"""
Row store contract and its two implementations.

SupabaseRowStore talks to the hosted Postgres REST API (PostgREST) with requests.
InMemoryRowStore keeps rows in dicts, optionally loaded from / saved to a JSON file,
and evaluates the same filters locally.
"""
import copy
import json
import logging
import os
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import requests

from noir_scheduler import config
from noir_scheduler.errors import ConstraintViolation, StorageUnavailable

logger = logging.getLogger(__name__)

# (column, operator, value) with PostgREST operator names
Filter = Tuple[str, str, Any]
Row = Dict[str, Any]

OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "in", "is")

# Postgres unique_violation / exclusion_violation
CONSTRAINT_ERROR_CODES = {"23505", "23P01"}


class RowStore(Protocol):
    def query(self, table: str, filters: Sequence[Filter] = (), order: Optional[str] = None) -> List[Row]: ...

    def insert(self, table: str, row: Row) -> Row: ...

    def update(self, table: str, filters: Sequence[Filter], values: Row) -> List[Row]: ...

    def delete(self, table: str, filters: Sequence[Filter]) -> List[Row]: ...


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def build_params(filters: Sequence[Filter], order: Optional[str] = None) -> List[Tuple[str, str]]:
    """Encodes filters as PostgREST query parameters, e.g. ("seats", "gte", 4) -> ("seats", "gte.4")."""
    params = []
    for column, op, value in filters:
        if op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator '{op}'")
        if op == "in":
            encoded = "(" + ",".join(_format_value(v) for v in value) + ")"
        else:
            encoded = _format_value(value)
        params.append((column, f"{op}.{encoded}"))
    if order:
        params.append(("order", order))
    return params


class SupabaseRowStore:
    def __init__(
        self,
        url: str | None = None,
        key: str | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (url or config.SUPABASE_URL or "").rstrip("/") + "/rest/v1"
        self.key = key or config.SUPABASE_SERVICE_ROLE_KEY
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else config.STORAGE_TIMEOUT_SECONDS
        self.session.headers.update(
            {
                "apikey": self.key or "",
                "Authorization": f"Bearer {self.key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def close(self):
        self.session.close()

    def _request(self, method: str, table: str, params=None, body=None, prefer: str | None = None) -> Any:
        url = f"{self.base_url}/{table}"
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = self.session.request(
                method, url, params=params, json=body, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {table} failed: {e}")
            raise StorageUnavailable(f"Row store unreachable: {e}") from e

        logger.debug(f"{method} {table} -> {response.status_code}")
        if response.status_code >= 400:
            try:
                detail = response.json()
            except ValueError:
                detail = {"message": response.text}
            code = str(detail.get("code", "")) if isinstance(detail, dict) else ""
            if response.status_code == 409 or code in CONSTRAINT_ERROR_CODES:
                raise ConstraintViolation(f"{table}: {detail}")
            logger.error(f"{method} {table} returned {response.status_code}: {detail}")
            raise StorageUnavailable(f"{table}: HTTP {response.status_code}")

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            raise StorageUnavailable(f"{table}: malformed response body") from e

    def query(self, table: str, filters: Sequence[Filter] = (), order: Optional[str] = None) -> List[Row]:
        params = [("select", "*")] + build_params(filters, order)
        return self._request("GET", table, params=params)

    def insert(self, table: str, row: Row) -> Row:
        rows = self._request("POST", table, body=row, prefer="return=representation")
        return rows[0] if isinstance(rows, list) else rows

    def update(self, table: str, filters: Sequence[Filter], values: Row) -> List[Row]:
        return self._request("PATCH", table, params=build_params(filters), body=values, prefer="return=representation")

    def delete(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        return self._request("DELETE", table, params=build_params(filters), prefer="return=representation")


def _coerce(row_value: Any, filter_value: Any) -> Tuple[Any, Any]:
    """Brings a stored value to the filter value's type so they can be compared."""
    if row_value is None or filter_value is None:
        return row_value, filter_value
    if isinstance(filter_value, datetime):
        if isinstance(row_value, str):
            row_value = datetime.fromisoformat(row_value)
        if row_value.tzinfo is None:
            row_value = row_value.replace(tzinfo=timezone.utc)
        if filter_value.tzinfo is None:
            filter_value = filter_value.replace(tzinfo=timezone.utc)
        return row_value, filter_value
    if isinstance(filter_value, date):
        if isinstance(row_value, str):
            row_value = date.fromisoformat(row_value[:10])
        elif isinstance(row_value, datetime):
            row_value = row_value.date()
        return row_value, filter_value
    if isinstance(filter_value, bool):
        return row_value, filter_value
    if isinstance(filter_value, (int, float)) and isinstance(row_value, str):
        return float(row_value), filter_value
    if isinstance(filter_value, str) and not isinstance(row_value, str):
        return str(row_value), filter_value
    return row_value, filter_value


def matches(row: Row, filters: Sequence[Filter]) -> bool:
    for column, op, value in filters:
        if op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator '{op}'")
        current = row.get(column)
        if op == "is":
            if current is not value and current != value:
                return False
            continue
        if op == "in":
            if not any(_equal(current, v) for v in value):
                return False
            continue
        if op == "eq":
            if not _equal(current, value):
                return False
            continue
        if op == "neq":
            # PostgREST comparisons never match NULL
            if current is None or _equal(current, value):
                return False
            continue
        if current is None:
            return False
        left, right = _coerce(current, value)
        if op == "gt" and not left > right:
            return False
        if op == "gte" and not left >= right:
            return False
        if op == "lt" and not left < right:
            return False
        if op == "lte" and not left <= right:
            return False
    return True


def _equal(current: Any, value: Any) -> bool:
    left, right = _coerce(current, value)
    return left == right


def _sort_rows(rows: List[Row], order: str) -> List[Row]:
    # Sort by the last key first so the earlier keys dominate (stable sort).
    for clause in reversed(order.split(",")):
        parts = clause.strip().split(".")
        column = parts[0]
        descending = len(parts) > 1 and parts[1] == "desc"
        present = [r for r in rows if r.get(column) is not None]
        missing = [r for r in rows if r.get(column) is None]
        present.sort(key=lambda r: _sort_key(r[column]), reverse=descending)
        rows = present + missing
    return rows


def _sort_key(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


class InMemoryRowStore:
    def __init__(self, tables: Dict[str, List[Row]] | None = None):
        self.tables: Dict[str, List[Row]] = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryRowStore":
        """Loads rows from a JSON file; accepts the wrapped format written by save_json_file or a plain mapping."""
        if not os.path.exists(path):
            logger.info(f"No data file found at {path}. Starting empty.")
            return cls()
        try:
            with open(path, "r") as f:
                data: Dict = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise StorageUnavailable(f"Failed to load data file {path}: {e}") from e
        if "last_updated" in data and "rows" in data:
            logger.info(f"Loaded data file {path}, last updated: {data['last_updated']}")
            return cls(data["rows"])
        return cls(data)

    def save_json_file(self, path: str):
        directory = os.path.dirname(path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
        data = {"last_updated": datetime.now(timezone.utc).isoformat(), "rows": self.tables}
        try:
            with open(path, "w") as f:
                json.dump(data, f, indent=2, default=str)
            logger.info(f"Saved data file {path} on {data['last_updated']}")
        except IOError as e:
            raise StorageUnavailable(f"Failed to save data file {path}: {e}") from e

    def query(self, table: str, filters: Sequence[Filter] = (), order: Optional[str] = None) -> List[Row]:
        rows = [copy.deepcopy(r) for r in self.tables.get(table, []) if matches(r, filters)]
        if order:
            rows = _sort_rows(rows, order)
        return rows

    def insert(self, table: str, row: Row) -> Row:
        rows = self.tables.setdefault(table, [])
        stored = dict(row)
        if stored.get("id") is None:
            numeric_ids = [r["id"] for r in rows if isinstance(r.get("id"), int)]
            stored["id"] = max(numeric_ids, default=0) + 1
        elif any(r.get("id") == stored["id"] for r in rows):
            raise ConstraintViolation(f"{table}: duplicate id {stored['id']}")
        rows.append(stored)
        return copy.deepcopy(stored)

    def update(self, table: str, filters: Sequence[Filter], values: Row) -> List[Row]:
        updated = []
        for row in self.tables.get(table, []):
            if matches(row, filters):
                row.update(values)
                updated.append(copy.deepcopy(row))
        return updated

    def delete(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        rows = self.tables.get(table, [])
        removed = [r for r in rows if matches(r, filters)]
        self.tables[table] = [r for r in rows if not matches(r, filters)]
        return removed
