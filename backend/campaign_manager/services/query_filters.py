"""List-query parsing: filters, projection, sorting and pagination.

WHAT:
    Turns the query string of a list endpoint into a typed `ListQuery` and
    applies it to a SQLAlchemy query.

    Syntax (any parameter other than select/sort/page/limit is a filter):
        status=active                  equality
        budget.total[gte]=500          comparison (gt, gte, lt, lte)
        status[in]=active,paused       membership, comma separated
        select=name,status             projection of top-level response fields
        sort=-createdAt,name           `-` prefix sorts descending
        page=2&limit=10

WHY:
    Every filterable field is whitelisted per resource with a type. Unknown
    fields, operators, sort keys or select keys are rejected with a
    ValidationError instead of being passed through to the database.
"""

from __future__ import annotations

import enum
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Query

from ..errors import ValidationError

RESERVED_PARAMS = frozenset({"select", "sort", "page", "limit"})
MAX_LIMIT = 100

_KEY_RE = re.compile(r"^(?P<field>[A-Za-z][A-Za-z0-9_.]*)(?:\[(?P<op>[A-Za-z]+)\])?$")


class FilterOperator(str, enum.Enum):
    eq = "eq"
    gt = "gt"
    gte = "gte"
    lt = "lt"
    lte = "lte"
    in_ = "in"


EQUALITY_OPERATORS = frozenset({FilterOperator.eq, FilterOperator.in_})
ALL_OPERATORS = frozenset(FilterOperator)


# Value coercers --------------------------------------------------

def as_string(raw: str) -> str:
    return raw


def as_float(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"'{raw}' is not a number")


def as_datetime(raw: str) -> datetime:
    """Parse ISO dates/datetimes; aware values are normalized to naive UTC."""
    try:
        value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"'{raw}' is not an ISO date")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def as_uuid(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise ValueError(f"'{raw}' is not a valid id")


def as_enum(enum_cls: type[enum.Enum]) -> Callable[[str], enum.Enum]:
    def _coerce(raw: str) -> enum.Enum:
        try:
            return enum_cls(raw)
        except ValueError:
            allowed = ", ".join(e.value for e in enum_cls)
            raise ValueError(f"'{raw}' is not one of: {allowed}")

    return _coerce


# Typed structures ------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    """A filterable/sortable public field and the column behind it."""
    column: Any
    coerce: Callable[[str], Any] = as_string
    operators: FrozenSet[FilterOperator] = EQUALITY_OPERATORS
    sortable: bool = True


@dataclass(frozen=True)
class ResourceFields:
    """Whitelist for one resource's list endpoint."""
    filters: Dict[str, FieldSpec]
    selectable: FrozenSet[str]
    default_limit: int
    default_sort: Tuple["SortKey", ...] = ()


@dataclass(frozen=True)
class FieldFilter:
    field: str
    operator: FilterOperator
    value: Any


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


@dataclass
class ListQuery:
    filters: List[FieldFilter] = field(default_factory=list)
    select: Optional[List[str]] = None
    sort: List[SortKey] = field(default_factory=list)
    page: int = 1
    limit: int = 25

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page:
    """One window of a list plus what is needed to build pagination links."""
    items: list
    total: int
    page: int
    limit: int

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def pagination(self) -> dict:
        result = {}
        if self.page * self.limit < self.total:
            result["next"] = {"page": self.page + 1, "limit": self.limit}
        if (self.page - 1) * self.limit > 0:
            result["prev"] = {"page": self.page - 1, "limit": self.limit}
        return result


# Parsing ---------------------------------------------------------

def _parse_positive_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 1 else default


def _parse_filter(key: str, raw_value: str, fields: ResourceFields) -> FieldFilter:
    match = _KEY_RE.match(key)
    if not match:
        raise ValidationError(f"Invalid filter parameter '{key}'")

    name = match.group("field")
    spec = fields.filters.get(name)
    if spec is None:
        raise ValidationError(f"Unknown filter field '{name}'")

    op_raw = match.group("op")
    try:
        operator = FilterOperator(op_raw) if op_raw else FilterOperator.eq
    except ValueError:
        raise ValidationError(f"Unknown filter operator '{op_raw}'")
    if operator not in spec.operators:
        raise ValidationError(f"Operator '{operator.value}' is not supported for '{name}'")

    try:
        if operator == FilterOperator.in_:
            values = [part.strip() for part in raw_value.split(",") if part.strip()]
            if not values:
                raise ValueError("expected a comma separated list")
            value: Any = [spec.coerce(part) for part in values]
        else:
            value = spec.coerce(raw_value)
    except ValueError as exc:
        raise ValidationError(f"Invalid value for '{name}': {exc}")

    return FieldFilter(field=name, operator=operator, value=value)


def _parse_select(raw: str, fields: ResourceFields) -> List[str]:
    selected = [part.strip() for part in raw.split(",") if part.strip()]
    unknown = [name for name in selected if name not in fields.selectable]
    if unknown:
        raise ValidationError(f"Unknown select field(s): {', '.join(unknown)}")
    return selected


def _parse_sort(raw: str, fields: ResourceFields) -> List[SortKey]:
    keys = []
    for part in (p.strip() for p in raw.split(",")):
        if not part:
            continue
        descending = part.startswith("-")
        name = part.lstrip("-+")
        spec = fields.filters.get(name)
        if spec is None or not spec.sortable:
            raise ValidationError(f"Cannot sort by '{name}'")
        keys.append(SortKey(field=name, descending=descending))
    return keys


def parse_list_query(params: Iterable[Tuple[str, str]], fields: ResourceFields) -> ListQuery:
    """Build a `ListQuery` from (key, value) query parameters.

    Raises:
        ValidationError: unknown field/operator/sort/select key or a value
            that does not coerce to the field's type.
    """
    reserved: Dict[str, str] = {}
    filters: List[FieldFilter] = []
    for key, value in params:
        if key in RESERVED_PARAMS:
            reserved[key] = value
            continue
        filters.append(_parse_filter(key, value, fields))

    select = _parse_select(reserved["select"], fields) if reserved.get("select") else None
    sort = _parse_sort(reserved["sort"], fields) if reserved.get("sort") else []
    if not sort:
        sort = list(fields.default_sort)

    page = _parse_positive_int(reserved.get("page"), 1)
    limit = min(_parse_positive_int(reserved.get("limit"), fields.default_limit), MAX_LIMIT)

    return ListQuery(filters=filters, select=select, sort=sort, page=page, limit=limit)


# Applying --------------------------------------------------------

def apply_filters(query: Query, filters: Sequence[FieldFilter], fields: ResourceFields) -> Query:
    for item in filters:
        column = fields.filters[item.field].column
        if item.operator == FilterOperator.eq:
            query = query.filter(column == item.value)
        elif item.operator == FilterOperator.gt:
            query = query.filter(column > item.value)
        elif item.operator == FilterOperator.gte:
            query = query.filter(column >= item.value)
        elif item.operator == FilterOperator.lt:
            query = query.filter(column < item.value)
        elif item.operator == FilterOperator.lte:
            query = query.filter(column <= item.value)
        elif item.operator == FilterOperator.in_:
            query = query.filter(column.in_(item.value))
    return query


def apply_sort(query: Query, sort: Sequence[SortKey], fields: ResourceFields) -> Query:
    for key in sort:
        column = fields.filters[key.field].column
        query = query.order_by(column.desc() if key.descending else column.asc())
    return query


def paginate(query: Query, list_query: ListQuery, fields: ResourceFields) -> Page:
    """Filter, count, sort and slice `query` (already scoped to the owner).

    The total is counted over the same scoped, filtered query the items come
    from, so `pagination.next` is exact for every caller.
    """
    query = apply_filters(query, list_query.filters, fields)
    total = query.order_by(None).count()
    query = apply_sort(query, list_query.sort, fields)
    items = query.offset(list_query.offset).limit(list_query.limit).all()
    return Page(items=items, total=total, page=list_query.page, limit=list_query.limit)


def project(record: dict, select: Optional[Sequence[str]]) -> dict:
    """Keep only the selected top-level keys of a serialized record (plus id)."""
    if not select:
        return record
    keep = set(select) | {"id"}
    return {key: value for key, value in record.items() if key in keep}
