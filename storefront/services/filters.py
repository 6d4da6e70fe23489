"""
Product listing filters: query-string parsing and normalization.

`parse_filter_params` accepts any mapping of parameter name to a single value or a
list of values (e.g. built from `request.query_params.multi_items()`), and accepts
both `key=value` and the bracketed `key[]=value` forms.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

SORT_OPTIONS = ("featured", "newest", "price_asc", "price_desc")
DEFAULT_SORT = "newest"
DEFAULT_LIMIT = 24
MAX_LIMIT = 60

# Parameters with a fixed meaning; every other key is read as an attribute facet.
RESERVED_KEYS = frozenset(
    {"search", "gender", "brand", "category", "size", "color", "price", "priceMin", "priceMax", "sort", "page", "limit"}
)

ParamValue = Union[str, Sequence[str], None]
PriceRange = Tuple[Optional[float], Optional[float]]


@dataclass
class NormalizedProductFilters:
    search: Optional[str] = None
    gender_slugs: List[str] = field(default_factory=list)
    brand_slugs: List[str] = field(default_factory=list)
    category_slugs: List[str] = field(default_factory=list)
    attribute_filters: Dict[str, List[str]] = field(default_factory=dict)
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    price_ranges: List[PriceRange] = field(default_factory=list)
    sort: str = DEFAULT_SORT
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _as_list(value: ParamValue) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _to_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        number = float(raw)
    except ValueError:
        return None
    return None if math.isnan(number) else number


def _to_int(raw: Optional[str], default: int) -> int:
    if raw in (None, ""):
        return default
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        # nan raises ValueError, inf raises OverflowError
        return default


def _parse_price_range(raw: str) -> PriceRange:
    min_str, _, max_str = str(raw).partition("-")
    return _to_float(min_str), _to_float(max_str)


def group_query_items(items: Sequence[Tuple[str, str]]) -> Dict[str, List[str]]:
    """Collapse repeated `(key, value)` pairs into `{key: [values]}`."""
    grouped: Dict[str, List[str]] = {}
    for key, value in items:
        grouped.setdefault(key, []).append(value)
    return grouped


def parse_filter_params(params: Mapping[str, ParamValue]) -> NormalizedProductFilters:
    def get_list(key: str) -> List[str]:
        return _as_list(params.get(key)) + _as_list(params.get(f"{key}[]"))

    def get_str(key: str) -> Optional[str]:
        values = get_list(key)
        return values[0] if values and values[0] != "" else None

    search = (get_str("search") or "").strip() or None

    attribute_filters: Dict[str, List[str]] = {}
    for raw_key in params:
        key = raw_key[:-2] if raw_key.endswith("[]") else raw_key
        if key in RESERVED_KEYS or key in attribute_filters:
            continue
        values = [v.lower() for v in get_list(key) if v != ""]
        if values:
            attribute_filters[key] = values

    # Legacy size/color parameters fold into the dynamic attribute filters.
    for legacy in ("size", "color"):
        values = [v.lower() for v in get_list(legacy) if v != ""]
        if values:
            attribute_filters[legacy] = values

    price_ranges = [_parse_price_range(r) for r in get_list("price") if r != ""]
    price_ranges = [r for r in price_ranges if r != (None, None)]

    sort = get_str("sort")
    if sort not in SORT_OPTIONS:
        sort = DEFAULT_SORT

    page = max(1, _to_int(get_str("page"), 1))
    limit = _to_int(get_str("limit"), DEFAULT_LIMIT) or DEFAULT_LIMIT
    limit = max(1, min(limit, MAX_LIMIT))

    return NormalizedProductFilters(
        search=search,
        gender_slugs=[s.lower() for s in get_list("gender") if s != ""],
        brand_slugs=[s.lower() for s in get_list("brand") if s != ""],
        category_slugs=[s.lower() for s in get_list("category") if s != ""],
        attribute_filters=attribute_filters,
        price_min=_to_float(get_str("priceMin")),
        price_max=_to_float(get_str("priceMax")),
        price_ranges=price_ranges,
        sort=sort,
        page=page,
        limit=limit,
    )
