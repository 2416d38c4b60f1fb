"""
Cursor (seek) pagination over a composite sort key.

Pieces, leaves first:
  1. ``parse_order``: ``["created_at_DESC", "id_DESC"]`` -> OrderSpec.
  2. ``encode_cursor`` / ``decode_cursor``: base64 JSON of the last row's
     sort-key values plus the order that produced them.
  3. ``build_range_predicate``: "row comes strictly after the cursor row".
  4. ``paginate``: runs one page against a ``PageSource`` and derives the
     next cursor from the last row.

Nothing here talks to a database. The predicate is a small structure the
storage layer compiles to SQL.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple, Protocol

logger = logging.getLogger(__name__)


class PaginationError(Exception):
    """Base class for client-side pagination errors (HTTP 400)."""


class InvalidOrderSpec(PaginationError):
    pass


class InvalidOrderDirection(InvalidOrderSpec):
    pass


class MalformedCursor(PaginationError):
    pass


class CursorOrderMismatch(PaginationError):
    pass


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class OrderTerm(NamedTuple):
    column: str
    direction: SortDirection

    def __str__(self) -> str:
        return f"{self.column}_{self.direction.value}"


OrderSpec = tuple[OrderTerm, ...]


def parse_order(entries: list[str]) -> OrderSpec:
    """Parse ``"<column>_<ASC|DESC>"`` entries, splitting on the last underscore."""
    if not entries:
        raise InvalidOrderSpec("order must contain at least one column")

    terms: list[OrderTerm] = []
    for entry in entries:
        column, sep, direction = entry.rpartition("_")
        if not sep or not column:
            raise InvalidOrderSpec(f"order entry {entry!r} must look like <column>_<ASC|DESC>")
        if direction not in (SortDirection.ASC.value, SortDirection.DESC.value):
            raise InvalidOrderDirection("order direction must be ASC or DESC")
        terms.append(OrderTerm(column, SortDirection(direction)))
    return tuple(terms)


def serialize_order(order: OrderSpec) -> list[str]:
    return [str(term) for term in order]


# ── Cursor codec ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class Cursor:
    values: dict[str, Any]
    order: OrderSpec


def encode_cursor(values: dict[str, Any], order: OrderSpec) -> str:
    payload = {"values": values, "order": serialize_order(order)}
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


def _is_scalar(value: Any) -> bool:
    if isinstance(value, int) and not isinstance(value, bool):
        return _INT64_MIN <= value <= _INT64_MAX
    return value is None or isinstance(value, (str, float, bool))


def decode_cursor(token: str) -> Cursor:
    try:
        raw = base64.b64decode(token, validate=True)
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise MalformedCursor("cursor could not be decoded") from exc

    if not isinstance(payload, dict):
        raise MalformedCursor("cursor payload must be an object")
    values = payload.get("values")
    order_entries = payload.get("order")
    if not isinstance(values, dict) or not isinstance(order_entries, list):
        raise MalformedCursor("cursor must carry 'values' and 'order'")
    if not all(isinstance(e, str) for e in order_entries):
        raise MalformedCursor("cursor order entries must be strings")

    try:
        order = parse_order(order_entries)
    except InvalidOrderSpec as exc:
        raise MalformedCursor(f"cursor order is invalid: {exc}") from exc

    missing = [term.column for term in order if term.column not in values]
    if missing:
        raise MalformedCursor(f"cursor is missing values for {', '.join(missing)}")
    for term in order:
        if not _is_scalar(values[term.column]):
            raise MalformedCursor(f"cursor value for {term.column} must be a scalar")

    return Cursor(values=values, order=order)


# ── Range predicate ────────────────────────────────────────────────────

class Comparison(NamedTuple):
    column: str
    op: str  # one of "=", ">", "<"
    value: Any


@dataclass(frozen=True)
class RangePredicate:
    """OR of clauses; each clause is an AND of comparisons."""

    clauses: tuple[tuple[Comparison, ...], ...]

    def matches(self, row: dict[str, Any]) -> bool:
        return any(all(_compare(row[c.column], c.op, c.value) for c in clause) for clause in self.clauses)


def _compare(left: Any, op: str, right: Any) -> bool:
    if op == "=":
        return left == right
    if op == ">":
        return left > right
    return left < right


def build_range_predicate(order: OrderSpec, values: dict[str, Any]) -> RangePredicate:
    """Rows strictly after ``values`` under the lexicographic ``order``.

    Clause ``i`` pins the first ``i`` columns to equality and applies the
    strict inequality to column ``i + 1``.
    """
    clauses = []
    for i, term in enumerate(order):
        prefix = tuple(Comparison(prev.column, "=", values[prev.column]) for prev in order[:i])
        op = ">" if term.direction is SortDirection.ASC else "<"
        clauses.append(prefix + (Comparison(term.column, op, values[term.column]),))
    return RangePredicate(tuple(clauses))


# ── Page execution ─────────────────────────────────────────────────────

class PageSource(Protocol):
    def fetch_page(
        self,
        filters: Any,
        order: OrderSpec,
        after: RangePredicate | None,
        limit: int,
    ) -> tuple[list[dict], int]:
        ...


@dataclass
class Page:
    data: list[dict]
    count: int
    next_cursor: str | None


def next_cursor_for(rows: list[dict], order: OrderSpec) -> str | None:
    if not rows:
        return None
    last = rows[-1]
    return encode_cursor({term.column: last[term.column] for term in order}, order)


def paginate(
    source: PageSource,
    filters: Any,
    order: OrderSpec,
    take: int,
    cursor: str | None = None,
) -> Page:
    if not order:
        raise InvalidOrderSpec("order must contain at least one column")
    if take < 1:
        raise ValueError("take must be a positive integer")

    after = None
    if cursor:
        decoded = decode_cursor(cursor)
        if decoded.order != order:
            raise CursorOrderMismatch(
                f"cursor was issued for order {serialize_order(decoded.order)}, "
                f"not {serialize_order(order)}"
            )
        after = build_range_predicate(order, decoded.values)

    rows, count = source.fetch_page(filters, order, after, take)
    logger.debug("Fetched %d of %d rows (order=%s, resumed=%s)", len(rows), count, serialize_order(order), after is not None)
    return Page(data=rows, count=count, next_cursor=next_cursor_for(rows, order))
