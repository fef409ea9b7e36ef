from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bizquery.agents.sql_agent.utils.types import ColumnSchema
from bizquery.core.errors import SchemaError

_GROUP_MARKERS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("date", ("date", "time")),
    ("numeric", ("int", "numeric", "decimal", "float", "double", "real")),
    ("text", ("char", "text", "varchar", "clob")),
    ("boolean", ("bool",)),
)


@dataclass(frozen=True)
class SchemaColumn:
    name: str
    type: str
    description: str = ""
    is_nullable: bool = True
    constraints: Tuple[str, ...] = ()

    @property
    def quoted(self) -> str:
        return '"' + self.name.replace('"', '""') + '"'


@dataclass
class CanonicalSchema:
    columns: List[SchemaColumn]
    groups: Dict[str, List[SchemaColumn]] = field(default_factory=dict)
    _by_name: Dict[str, SchemaColumn] = field(default_factory=dict, repr=False)

    def get_column(self, name: str) -> Optional[SchemaColumn]:
        return self._by_name.get((name or "").lower())

    def columns_of(self, group: str) -> List[SchemaColumn]:
        return list(self.groups.get(group, []))

    def has_type(self, group: str) -> bool:
        return bool(self.groups.get(group))

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.columns]


def type_group(type_name: str) -> Optional[str]:
    t = (type_name or "").lower()
    for group, markers in _GROUP_MARKERS:
        if any(m in t for m in markers):
            return group
    return None


def _nullable(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw.strip().upper() not in ("NO", "FALSE", "0")
    return bool(raw)


def _coerce(col: Any) -> SchemaColumn:
    if isinstance(col, SchemaColumn):
        return col
    if isinstance(col, ColumnSchema):
        return SchemaColumn(name=col.name, type=col.semantic_type.value)
    if not isinstance(col, dict):
        raise SchemaError(f"Unsupported column definition: {col!r}")

    # catalog shape first, then upload shape
    name = col.get("column_name") or col.get("name") or ""
    ctype = col.get("data_type") or col.get("type") or col.get("semanticType") or col.get("semantic_type") or ""
    if hasattr(ctype, "value"):
        ctype = ctype.value
    return SchemaColumn(
        name=str(name),
        type=str(ctype),
        description=str(col.get("description") or ""),
        is_nullable=_nullable(col.get("is_nullable")),
        constraints=tuple(col.get("constraints") or ()),
    )


def normalize_schema(columns: Iterable[Any]) -> CanonicalSchema:
    """
    Accept upload-time columns ({name, type}), catalog rows
    ({column_name, data_type, is_nullable}) or ColumnSchema objects and return
    one canonical structure grouped by type category.
    """
    if isinstance(columns, CanonicalSchema):
        return columns
    if columns is None or isinstance(columns, (str, bytes, dict)):
        raise SchemaError("Schema must be a sequence of column definitions")

    normalized = [_coerce(c) for c in columns]
    if not normalized:
        raise SchemaError("Schema has no columns")

    reasons: List[str] = []
    for i, c in enumerate(normalized):
        if not c.name:
            reasons.append(f"Column {i} is missing a name")
        if not c.type:
            reasons.append(f"Column {c.name or i} is missing a type")
    if reasons:
        raise SchemaError("Malformed schema", reasons)

    groups: Dict[str, List[SchemaColumn]] = {g: [] for g, _ in _GROUP_MARKERS}
    for c in normalized:
        g = type_group(c.type)
        if g:
            groups[g].append(c)

    by_name: Dict[str, SchemaColumn] = {}
    for c in normalized:
        by_name.setdefault(c.name.lower(), c)

    return CanonicalSchema(columns=normalized, groups=groups, _by_name=by_name)
