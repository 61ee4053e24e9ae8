"""Async client for the remote PostgREST-compatible store.

Queries are composed with a small chainable builder::

    result = await store.from_("participants").select().eq("session_id", sid).order("created_at")

and always resolve to a :class:`RemoteResult` instead of raising, so callers
decide how loudly a failure should surface.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

import aiohttp

from core import HttpDefaults, get_logger
from core.exceptions import ConnectivityError, NotFoundError, RemoteStoreError

logger = get_logger(__name__)

T = TypeVar("T")

# Client errors that say nothing about the row itself
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})

FILTER_OPERATORS = frozenset({"eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike", "is", "in"})

Row = Dict[str, Any]
Body = Union[Row, List[Row]]


@dataclass(frozen=True)
class Filter:
    column: str
    operator: str
    value: Any


@dataclass
class Query:
    """Everything needed to issue one request against a resource."""

    table: str
    method: str = "GET"
    columns: str = "*"
    filters: List[Filter] = field(default_factory=list)
    order: Optional[Tuple[str, bool]] = None
    limit: Optional[int] = None
    single: bool = False
    body: Optional[Body] = None
    returning: bool = False


@dataclass
class RemoteResult(Generic[T]):
    """``{data, error}`` pair returned by every remote operation."""

    data: Optional[T] = None
    error: Optional[RemoteStoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: RemoteStoreError) -> "RemoteResult[T]":
        return cls(data=None, error=error)


def format_value(value: Any) -> str:
    """Render a filter value in PostgREST syntax."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set)):
        return "(" + ",".join(format_value(item) for item in value) + ")"
    return str(value)


def build_params(query: Query) -> List[Tuple[str, str]]:
    """Translate a query into URL parameters, e.g. ``("won", "eq.false")``."""
    params: List[Tuple[str, str]] = []
    if query.method == "GET" or query.returning:
        params.append(("select", query.columns))
    for item in query.filters:
        params.append((item.column, f"{item.operator}.{format_value(item.value)}"))
    if query.method != "GET":
        # order/limit only shape reads; writes return every affected row
        return params
    if query.order is not None:
        column, ascending = query.order
        params.append(("order", f"{column}.{'asc' if ascending else 'desc'}"))
    if query.limit is not None:
        params.append(("limit", str(query.limit)))
    return params


class QueryBuilder:
    """Chainable builder bound to one resource; awaiting it runs the query."""

    def __init__(self, table: str, store: "RemoteStore") -> None:
        self._query = Query(table=table)
        self._store = store

    @property
    def query(self) -> Query:
        return self._query

    def select(self, columns: str = "*") -> "QueryBuilder":
        self._query.columns = columns
        if self._query.method == "GET":
            return self
        # select() after insert/update asks for the affected rows back
        self._query.returning = True
        return self

    def insert(self, data: Body) -> "QueryBuilder":
        self._query.method = "POST"
        self._query.body = data
        return self

    def update(self, data: Row) -> "QueryBuilder":
        self._query.method = "PATCH"
        self._query.body = data
        return self

    def delete(self) -> "QueryBuilder":
        self._query.method = "DELETE"
        return self

    def filter(self, column: str, operator: str, value: Any) -> "QueryBuilder":
        if operator not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {operator}")
        self._query.filters.append(Filter(column, operator, value))
        return self

    def eq(self, column: str, value: Any) -> "QueryBuilder":
        return self.filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "QueryBuilder":
        return self.filter(column, "neq", value)

    def gt(self, column: str, value: Any) -> "QueryBuilder":
        return self.filter(column, "gt", value)

    def gte(self, column: str, value: Any) -> "QueryBuilder":
        return self.filter(column, "gte", value)

    def lt(self, column: str, value: Any) -> "QueryBuilder":
        return self.filter(column, "lt", value)

    def lte(self, column: str, value: Any) -> "QueryBuilder":
        return self.filter(column, "lte", value)

    def is_(self, column: str, value: Optional[bool]) -> "QueryBuilder":
        return self.filter(column, "is", value)

    def in_(self, column: str, values: Sequence[Any]) -> "QueryBuilder":
        return self.filter(column, "in", list(values))

    def order(self, column: str, ascending: bool = True) -> "QueryBuilder":
        self._query.order = (column, ascending)
        return self

    def limit(self, count: int) -> "QueryBuilder":
        if count < 1:
            raise ValueError("limit must be positive")
        self._query.limit = count
        return self

    def single(self) -> "QueryBuilder":
        self._query.single = True
        self._query.limit = 1
        return self

    async def execute(self) -> RemoteResult[Any]:
        return await self._store.run(self._query)

    def __await__(self) -> Generator[Any, None, RemoteResult[Any]]:
        return self.execute().__await__()


class RemoteStore:
    """Base class for stores that understand :class:`Query` objects."""

    def from_(self, table: str) -> QueryBuilder:
        return QueryBuilder(table, self)

    async def run(self, query: Query) -> RemoteResult[Any]:
        raise NotImplementedError

    @staticmethod
    def shape(query: Query, rows: Optional[List[Row]]) -> RemoteResult[Any]:
        """Apply ``single()`` semantics to the raw rows of a response."""
        if not query.single:
            return RemoteResult(data=rows)
        if not rows:
            return RemoteResult.failure(NotFoundError(f"No matching row in {query.table}", status=406))
        return RemoteResult(data=rows[0])

    async def close(self) -> None:
        return None


class PostgrestClient(RemoteStore):
    """REST client for a PostgREST (or Supabase REST) endpoint."""

    def __init__(
        self,
        base_url: str = HttpDefaults.API_URL,
        api_key: Optional[str] = None,
        timeout: float = HttpDefaults.TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def _headers(self, query: Query) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if query.returning and query.method in {"POST", "PATCH"}:
            headers["Prefer"] = "return=representation"
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def run(self, query: Query) -> RemoteResult[Any]:
        url = f"{self.base_url}/{query.table}"
        try:
            session = self._get_session()
            async with session.request(
                query.method,
                url,
                params=build_params(query),
                json=query.body,
                headers=self._headers(query),
            ) as response:
                status = response.status
                text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"PostgREST {query.method} {query.table} unreachable: {e!r}")
            return RemoteResult.failure(ConnectivityError(f"Remote store unreachable: {e!r}"))
        except UnicodeDecodeError as e:
            logger.warning(f"PostgREST {query.method} {query.table} sent an undecodable body: {e}")
            return RemoteResult.failure(ConnectivityError(f"Undecodable response from {query.table}: {e}"))

        if status >= 400:
            logger.warning(f"PostgREST {query.method} {query.table} failed: {status} - {text[:200]}")
            return RemoteResult.failure(self._status_error(query, status, text))
        if not text:
            return self.shape(query, None) if query.single else RemoteResult(data=None)
        try:
            payload = json.loads(text)
        except ValueError as e:
            return RemoteResult.failure(ConnectivityError(f"Malformed response from {query.table}: {e}"))
        rows = payload if isinstance(payload, list) else [payload]
        return self.shape(query, rows)

    @staticmethod
    def _status_error(query: Query, status: int, text: str) -> RemoteStoreError:
        """Classify an HTTP error response.

        A rejected read (unknown id, malformed uuid) means the row cannot be
        found. Anything else is reported as transient.
        """
        message = f"PostgREST error: {status} - {text}"
        if query.method == "GET" and 400 <= status < 500 and status not in RETRYABLE_CLIENT_STATUSES:
            return NotFoundError(message, status=status)
        return ConnectivityError(message, status=status)

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
