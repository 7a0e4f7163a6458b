"""CSV column schemas.

A schema maps each output column name to either a field path inside a
vulnerability record or the row-index marker.  Schemas come from the
built-in default or from a definition file::

    row#:null
    id:cve,id
    cvssMetricV31_baseScore:cve,metrics,cvssMetricV31,0,cvssData,baseScore

JSON and YAML files holding a mapping of column name to key list (or
``null`` for the row index) are accepted as well.
"""

import json
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import SchemaFormatError, SchemaLoadError

NULL_TOKEN = "null"
_DIGITS_RE = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class FieldPath:
    """Column filled by projecting ``keys`` into each record."""

    keys: tuple[str | int, ...]


@dataclass(frozen=True)
class RowIndex:
    """Column filled with the running row number."""


ColumnSpec = FieldPath | RowIndex


class Schema(Mapping):
    """Immutable ordered mapping of column name to :data:`ColumnSpec`."""

    def __init__(self, columns: Mapping[str, ColumnSpec] | list[tuple[str, ColumnSpec]]):
        items = list(columns.items()) if isinstance(columns, Mapping) else list(columns)
        ordered: dict[str, ColumnSpec] = {}
        for name, spec in items:
            if name in ordered:
                raise ValueError(f"duplicate column name {name!r}")
            if not isinstance(spec, (FieldPath, RowIndex)):
                raise TypeError(f"column {name!r}: expected FieldPath or RowIndex, got {spec!r}")
            ordered[name] = spec
        self._columns = ordered

    def __getitem__(self, name: str) -> ColumnSpec:
        return self._columns[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return list(self._columns.items()) == list(other._columns.items())

    def __hash__(self) -> int:
        return hash(tuple(self._columns.items()))

    def __repr__(self) -> str:
        return f"Schema({list(self._columns.items())!r})"

    @property
    def names(self) -> list[str]:
        """Column names in output order."""
        return list(self._columns)

    @property
    def has_row_index(self) -> bool:
        return any(isinstance(spec, RowIndex) for spec in self._columns.values())


def _path(*keys: str | int) -> FieldPath:
    return FieldPath(tuple(keys))


def default_schema() -> Schema:
    """Build the built-in 12-column schema for NVD CVE API 2.0 records.

    Returns:
        Schema with a row index, the CVE identity/status fields, and the
        primary CVSS v3.1 / v2 metrics.
    """
    return Schema(
        [
            ("row#", RowIndex()),
            ("id", _path("cve", "id")),
            ("sourceIdentifier", _path("cve", "sourceIdentifier")),
            ("published", _path("cve", "published")),
            ("lastModified", _path("cve", "lastModified")),
            ("vulnStatus", _path("cve", "vulnStatus")),
            ("attackVector_V31", _path("cve", "metrics", "cvssMetricV31", 0, "cvssData", "attackVector")),
            ("cvssMetricV31_baseScore", _path("cve", "metrics", "cvssMetricV31", 0, "cvssData", "baseScore")),
            ("cvssMetricV31_baseSeverity", _path("cve", "metrics", "cvssMetricV31", 0, "cvssData", "baseSeverity")),
            ("cvssMetricV2_baseScore", _path("cve", "metrics", "cvssMetricV2", 0, "cvssData", "baseScore")),
            ("cvssMetricV2_baseSeverity", _path("cve", "metrics", "cvssMetricV2", 0, "baseSeverity")),
            ("accessVector_V2", _path("cve", "metrics", "cvssMetricV2", 0, "cvssData", "accessVector")),
        ]
    )


def coerce_token(token: str) -> str | int | None:
    """Convert one path token to its key type.

    Args:
        token: Raw token from a definition line.

    Returns:
        ``int`` for pure-digit tokens, None for ``null``, else the string.
    """
    if _DIGITS_RE.match(token):
        return int(token)
    if token == NULL_TOKEN:
        return None
    return token


def _column_spec(keys: list[Any], line_no: int | None, line: str) -> ColumnSpec:
    """Turn a coerced key list into a column spec."""
    if keys == [None]:
        return RowIndex()
    if not keys:
        raise SchemaFormatError("empty field path", line_no, line)
    for key in keys:
        if key is None:
            raise SchemaFormatError("'null' must be the only token of a column", line_no, line)
        if isinstance(key, bool) or not isinstance(key, (str, int)):
            raise SchemaFormatError(f"unsupported key {key!r}", line_no, line)
        if key == "":
            raise SchemaFormatError("empty key in field path", line_no, line)
        if isinstance(key, int) and key < 0:
            raise SchemaFormatError("negative index in field path", line_no, line)
    return FieldPath(tuple(keys))


def parse_schema_text(text: str) -> Schema:
    """Parse the line-oriented ``column:key1,key2`` schema format.

    Args:
        text: Whole file contents.

    Returns:
        Parsed schema in file order.

    Raises:
        SchemaFormatError: On a line without ``:``, an empty column name,
            a duplicate column, or an invalid path.
    """
    columns: dict[str, ColumnSpec] = {}
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        name, sep, rest = line.partition(":")
        name = name.strip()
        if not sep:
            raise SchemaFormatError("missing ':' between column name and field path", line_no, line)
        if not name:
            raise SchemaFormatError("empty column name", line_no, line)
        if name in columns:
            raise SchemaFormatError(f"duplicate column {name!r}", line_no, line)
        keys = [coerce_token(tok.strip()) for tok in rest.split(",")]
        columns[name] = _column_spec(keys, line_no, line)
    return Schema(columns)


def _check_column_name(name: str, entry: str) -> None:
    if not name:
        raise SchemaFormatError("empty column name", None, entry)
    if any(c in name for c in ":\r\n") or name != name.strip():
        raise SchemaFormatError(f"column name {name!r} cannot contain ':' or surrounding whitespace", None, entry)


def parse_schema_mapping(raw: Any) -> Schema:
    """Build a schema from a decoded JSON/YAML document.

    Column names and string keys are held to what the text format can
    express, so that :func:`dump_schema` output reloads unchanged.

    Args:
        raw: Mapping of column name to a key list, or to None for the
            row index.

    Returns:
        Parsed schema in document order.

    Raises:
        SchemaFormatError: If the document is not a mapping, an entry
            is neither a list nor null, a column name is empty, contains
            ``:`` or has surrounding whitespace, or a string key contains
            ``,`` or has surrounding whitespace.
    """
    if not isinstance(raw, dict):
        raise SchemaFormatError("schema document must be a mapping of column name to field path")

    columns: dict[str, ColumnSpec] = {}
    for name, value in raw.items():
        entry = f"{name}: {value!r}"
        _check_column_name(str(name), entry)
        if str(name) in columns:
            raise SchemaFormatError(f"duplicate column {name!r}", None, entry)
        if value is None:
            columns[str(name)] = RowIndex()
            continue
        if not isinstance(value, list):
            raise SchemaFormatError(f"column {name!r} must map to a list or null", None, entry)
        for v in value:
            if isinstance(v, str) and (any(c in v for c in ",\r\n") or v != v.strip()):
                raise SchemaFormatError(f"key {v!r} cannot contain ',' or surrounding whitespace", None, entry)
        keys = [coerce_token(v) if isinstance(v, str) else v for v in value]
        columns[str(name)] = _column_spec(keys, None, entry)
    return Schema(columns)


def load_schema(path: Path) -> Schema:
    """Load a schema from a definition file.

    ``.json``, ``.yaml`` and ``.yml`` files are parsed as structured
    documents; anything else uses the line-oriented text format.

    Args:
        path: Path to the schema file.

    Returns:
        Parsed ``Schema``.

    Raises:
        SchemaLoadError: If the file cannot be read.
        SchemaFormatError: If the content is malformed.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SchemaLoadError(f"Could not read schema file {path}: {e}") from e

    suffix = path.suffix.lower()
    if suffix == ".json":
        try:
            raw = json.loads(content)
        except json.JSONDecodeError as e:
            raise SchemaFormatError(f"invalid JSON in {path}: {e}") from e
        return parse_schema_mapping(raw)
    if suffix in (".yaml", ".yml"):
        try:
            raw = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise SchemaFormatError(f"invalid YAML in {path}: {e}") from e
        return parse_schema_mapping(raw)
    return parse_schema_text(content)


def dump_schema(schema: Schema) -> str:
    """Render a schema in the line-oriented text format.

    Schemas from :func:`load_schema` always reload unchanged.  A schema
    built by hand whose column names contain ``:`` or whose string keys
    contain ``,`` has no text form that reloads identically.

    Args:
        schema: Schema to render.

    Returns:
        Text that :func:`parse_schema_text` turns back into ``schema``.
    """
    lines = []
    for name, spec in schema.items():
        if isinstance(spec, RowIndex):
            tokens = NULL_TOKEN
        else:
            tokens = ",".join(str(k) for k in spec.keys)
        lines.append(f"{name}:{tokens}")
    return "\n".join(lines) + "\n"


def write_schema(schema: Schema, path: Path) -> None:
    """Write ``schema`` to ``path`` in the text format."""
    path.write_text(dump_schema(schema), encoding="utf-8")
