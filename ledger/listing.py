"""
Filtered, ordered, paginated reads shared by every list endpoint.

A ``ResourceSpec`` names the table and which query keys map to which
columns.  Filters are ANDed; a key that is absent (or empty) is left out of
the predicate entirely.  The page query and the COUNT(*) query are built
from the same ``Predicate``, and ``fetch_all`` (used by the ledger
aggregator) reuses it too, so lists and statistics always agree.

Free-text search is a second stage: it narrows the rows of the page that was
already fetched, so a page can come back shorter than ``limit`` while more
matches exist further on.  ``total`` counts the database predicate only.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from .database import Database
from .pagination import clamp_limit, decode_page_token, encode_page_token

logger = logging.getLogger(__name__)

ORDER_ASC  = "asc"
ORDER_DESC = "desc"


@dataclass(frozen=True)
class ResourceSpec:
    table: str
    # query key -> column, matched with "="
    filters: Mapping[str, str] = field(default_factory=dict)
    # query key -> column, matched as "<value>%"
    prefix_filters: Mapping[str, str] = field(default_factory=dict)
    # query key -> (column, operator) for inclusive bounds
    range_filters: Mapping[str, tuple[str, str]] = field(default_factory=dict)
    # columns scanned by the free-text search stage
    search_columns: Sequence[str] = ()
    # sortBy key -> column; "createdAt" is always available
    sort_columns: Mapping[str, str] = field(default_factory=lambda: {"createdAt": "created_at"})
    default_limit: int = 25
    max_limit: int = 500


@dataclass
class Predicate:
    clauses: list[str] = field(default_factory=list)
    params: list[Any] = field(default_factory=list)

    def where(self) -> str:
        return f"WHERE {' AND '.join(self.clauses)}" if self.clauses else ""


@dataclass
class ListPage:
    rows: list[dict]
    total: int
    offset: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    @property
    def next_page_token(self) -> Optional[str]:
        return encode_page_token(self.offset, self.limit, self.has_more)

    @property
    def next_cursor(self) -> Optional[str]:
        """created_at of the last row on the page (older clients page by it)."""
        return self.rows[-1].get("created_at") if self.rows else None


def build_predicate(spec: ResourceSpec, filters: Mapping[str, Any]) -> Predicate:
    pred = Predicate()
    for key, column in spec.filters.items():
        value = filters.get(key)
        if value is None or value == "":
            continue
        pred.clauses.append(f"{column} = ?")
        pred.params.append(value)
    for key, column in spec.prefix_filters.items():
        value = filters.get(key)
        if value is None or not str(value).strip():
            continue
        # substr() keeps "%" and "_" in the prefix literal
        pred.clauses.append(f"substr({column}, 1, ?) = ?")
        pred.params.extend([len(str(value)), str(value)])
    for key, (column, op) in spec.range_filters.items():
        value = filters.get(key)
        if value is None or value == "":
            continue
        pred.clauses.append(f"{column} {op} ?")
        pred.params.append(value)
    return pred


def order_clause(spec: ResourceSpec, order: Optional[str], sort_by: Optional[str]) -> str:
    column = spec.sort_columns.get(sort_by or "createdAt", "created_at")
    direction = "ASC" if (order or "").lower() == ORDER_ASC else "DESC"
    # rowid breaks ties between rows written in the same instant
    return f"ORDER BY {column} {direction}, rowid {direction}"


def apply_search(rows: list[dict], term: Optional[str], columns: Sequence[str]) -> list[dict]:
    """Case-insensitive substring match of *term* against any of *columns*."""
    if not term or not columns:
        return rows
    needle = term.lower()
    return [
        r for r in rows
        if any(needle in str(r.get(c) or "").lower() for c in columns)
    ]


class ListEngine:
    """Runs list and snapshot queries for a ResourceSpec."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def fetch_page(
        self,
        spec: ResourceSpec,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order: Optional[str] = ORDER_DESC,
        sort_by: Optional[str] = None,
        limit: Any = None,
        page_token: Optional[str] = None,
        search: Optional[str] = None,
    ) -> ListPage:
        limit = clamp_limit(limit, spec.default_limit, 1, spec.max_limit)
        offset = decode_page_token(page_token)
        pred = build_predicate(spec, filters or {})

        with self.db.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM {spec.table} {pred.where()} "
                f"{order_clause(spec, order, sort_by)} LIMIT ? OFFSET ?",
                [*pred.params, limit, offset],
            ).fetchall()
            total = conn.execute(
                f"SELECT COUNT(*) AS count FROM {spec.table} {pred.where()}",
                pred.params,
            ).fetchone()["count"]

        page_rows = apply_search([dict(r) for r in rows], search, spec.search_columns)
        logger.debug(
            "%s page offset=%d limit=%d -> %d rows (total %d)",
            spec.table, offset, limit, len(page_rows), total,
        )
        return ListPage(rows=page_rows, total=int(total or 0), offset=offset, limit=limit)

    def fetch_all(
        self,
        spec: ResourceSpec,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order: Optional[str] = ORDER_DESC,
        sort_by: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[dict]:
        """Every row matching the predicate, unpaginated, search applied."""
        pred = build_predicate(spec, filters or {})
        rows = self.db.query(
            f"SELECT * FROM {spec.table} {pred.where()} {order_clause(spec, order, sort_by)}",
            pred.params,
        )
        return apply_search(rows, search, spec.search_columns)
