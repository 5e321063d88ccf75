import csv
import datetime
import io
import json
import logging
import math
import re
from collections import Counter, OrderedDict
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Sequence

from dateutil import parser
from TCLIService import ttypes

from hive_tcli.exc import NotSupportedError

try:
    import pyarrow
except ImportError:
    pyarrow = None

logger = logging.getLogger(__name__)

COMPLEX_TYPE_PATTERN = re.compile(r"^(array|map|struct)")
INTEGER_TYPES = ("tinyint", "smallint", "int", "bigint")
FLOAT_TYPES = ("float", "double")


def _clean_type(t_type_entry) -> str:
    if t_type_entry.primitiveEntry is None:
        return "string"
    name = ttypes.TTypeId._VALUES_TO_NAMES.get(t_type_entry.primitiveEntry.type)
    if name is None:
        return "string"
    # Drop _TYPE suffix
    return (name[:-5] if name.endswith("_TYPE") else name).lower()


class SchemaDefinition:
    """
    Column names and types of a result, combined from the server's result set
    metadata and the shape of the first fetched row.
    """

    def __init__(self, t_table_schema, example_row: Optional[Sequence[Any]] = None):
        self.schema = t_table_schema
        self._example_row = list(example_row) if example_row is not None else []
        self._column_names: Optional[List[str]] = None
        self._column_type_map: Optional[Dict[str, str]] = None

    @property
    def _columns(self):
        if self.schema is None or not self.schema.columns:
            return []
        return self.schema.columns

    @property
    def column_names(self) -> List[str]:
        if self._column_names is None:
            schema_names = [c.columnName for c in self._columns]

            # Hive can return two identical column names (SELECT a.foo, b.foo),
            # number them so no column is trampled when building row dicts.
            totals = Counter(schema_names)
            seen: Counter = Counter()
            names = []
            for name in schema_names:
                if totals[name] > 1:
                    seen[name] += 1
                    names.append("{}_{}".format(name, seen[name]))
                else:
                    names.append(name)

            # Partition columns of SELECT * queries come without metadata
            offset = 0
            while len(names) < len(self._example_row):
                offset += 1
                names.append("_p{}".format(offset))

            self._column_names = names
        return self._column_names

    @property
    def column_type_map(self) -> Dict[str, str]:
        if self._column_type_map is None:
            types = [_clean_type(c.typeDesc.types[0]) for c in self._columns]
            type_map = OrderedDict()
            for i, name in enumerate(self.column_names):
                type_map[name] = types[i] if i < len(types) else "string"
            self._column_type_map = type_map
        return self._column_type_map

    def coerce_row(self, values: Sequence[Any]) -> Dict[str, Any]:
        return OrderedDict(
            (name, self.coerce_column(name, value))
            for name, value in zip(self.column_names, values)
        )

    def coerce_column(self, column_name: str, value: Any) -> Any:
        type_name = self.column_type_map.get(column_name, "string")
        if value is None:
            return None

        if type_name != "string" and value == "Infinity":
            return math.inf
        if type_name != "string" and value == "NaN":
            return math.nan
        if COMPLEX_TYPE_PATTERN.match(type_name):
            return _coerce_complex_value(value)

        if not isinstance(value, str):
            return value

        if type_name in INTEGER_TYPES:
            return int(value)
        if type_name in FLOAT_TYPES:
            return float(value)
        if type_name == "boolean":
            return value.lower() == "true"
        if type_name == "decimal":
            return Decimal(value)
        if type_name == "date":
            return datetime.date.fromisoformat(value)
        if type_name == "timestamp":
            return parser.parse(value)
        return value


def _coerce_complex_value(value):
    if value is None or len(value) == 0 or value == "null":
        return None
    return json.loads(value)


class ResultSet:
    """
    One page of rows pulled from an operation, each row a dict keyed by column
    name, paired with the schema that describes them.
    """

    def __init__(self, rows: Sequence[Sequence[Any]], schema: SchemaDefinition):
        self.schema = schema
        self.rows = [schema.coerce_row(r) for r in rows]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.rows)

    def __getitem__(self, item):
        return self.rows[item]

    def __bool__(self) -> bool:
        return bool(self.rows)

    def __repr__(self) -> str:
        return "ResultSet(columns={}, rows={})".format(self.column_names, len(self))

    @property
    def column_names(self) -> List[str]:
        return self.schema.column_names

    @property
    def column_type_map(self) -> Dict[str, str]:
        return self.schema.column_type_map

    def as_tuples(self) -> List[tuple]:
        return [tuple(row[n] for n in self.column_names) for row in self.rows]

    def to_csv(self, path_or_buf=None, sep: str = ","):
        """Write the rows as delimited text.

        Writes to the given path or file-like object, or returns the text when
        neither is supplied.
        """
        if path_or_buf is None:
            buf = io.StringIO()
            self._write_delimited(buf, sep)
            return buf.getvalue()
        if isinstance(path_or_buf, str):
            with open(path_or_buf, "w", newline="") as f:
                self._write_delimited(f, sep)
            return None
        self._write_delimited(path_or_buf, sep)
        return None

    def to_tsv(self, path_or_buf=None):
        return self.to_csv(path_or_buf, sep="\t")

    def _write_delimited(self, out, sep):
        writer = csv.writer(out, delimiter=sep, lineterminator="\n")
        writer.writerows(self.as_tuples())

    def to_arrow_table(self) -> "pyarrow.Table":
        if pyarrow is None:
            raise NotSupportedError(
                "pyarrow is required to convert results to an Arrow table"
            )
        arrow_schema = pyarrow.schema(
            [
                pyarrow.field(name, _arrow_type(type_name))
                for name, type_name in self.column_type_map.items()
            ]
        )
        columns = list(zip(*self.as_tuples())) or [[] for _ in self.column_names]
        return pyarrow.Table.from_arrays(
            [
                pyarrow.array(list(column), type=field.type)
                for column, field in zip(columns, arrow_schema)
            ],
            schema=arrow_schema,
        )


def _arrow_type(type_name: str):
    return {
        "boolean": pyarrow.bool_(),
        "tinyint": pyarrow.int8(),
        "smallint": pyarrow.int16(),
        "int": pyarrow.int32(),
        "bigint": pyarrow.int64(),
        "float": pyarrow.float32(),
        "double": pyarrow.float64(),
        "timestamp": pyarrow.timestamp("us", None),
        "date": pyarrow.date32(),
        "binary": pyarrow.binary(),
        "null": pyarrow.null(),
    }.get(type_name, pyarrow.string())


class ExplainResult:
    """The lines of an EXPLAIN plan, grouped by section heading."""

    def __init__(self, rows: Sequence[str]):
        self._rows = list(rows)

    @property
    def raw(self) -> List[str]:
        return self._rows

    def to_tsv(self) -> str:
        return "\n".join(self._rows)

    def __str__(self) -> str:
        return self.to_tsv()

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(self._rows)

    @property
    def ast(self) -> Optional[str]:
        section = self.sections.get("abstract_syntax_tree")
        return section[0] if section else None

    @property
    def stage_dependencies(self) -> List[str]:
        return self.sections.get("stage_dependencies", [])

    @property
    def stage_count(self) -> int:
        return len(self.stage_dependencies)

    @property
    def sections(self) -> Dict[str, List[str]]:
        sections: Dict[str, List[str]] = OrderedDict()
        current = None
        for row in self._rows:
            if row is None or len(row.strip()) == 0:
                continue
            if row[0].isupper():
                current = row.strip().rstrip(":").lower().replace(" ", "_")
                sections[current] = []
            elif current is not None:
                sections[current].append(row.strip())
        return sections
