"""Table descriptors and the row-model contract.

A ``Table`` names a relation, its columns and its primary key. A
``RowModel`` is a pydantic model bound to exactly one ``Table`` through the
``__table__`` class attribute; the generic repositories build every
statement from that pairing.
"""
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict

from shared.database.errors import SchemaMismatch

IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def quote_identifier(name: str) -> str:
    """Double-quote a validated SQL identifier."""
    if not IDENTIFIER_PATTERN.match(name):
        raise SchemaMismatch(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


@dataclass(frozen=True)
class Table:
    """
    Immutable description of one relational table.

    Fields:
    - name: Table name (e.g., "core_log")
    - columns: Every column, in the order statements list them
    - primary_key: Primary-key column(s), each also present in columns
    - schema: Optional schema qualifier (e.g., "public")
    """
    name: str
    columns: Tuple[str, ...]
    primary_key: Tuple[str, ...]
    schema: Optional[str] = None

    def __post_init__(self):
        # Accept lists from callers, store tuples
        object.__setattr__(self, 'columns', tuple(self.columns))
        object.__setattr__(self, 'primary_key', tuple(self.primary_key))

        quote_identifier(self.name)
        if self.schema is not None:
            quote_identifier(self.schema)

        if not self.columns:
            raise SchemaMismatch(f"Table {self.name} declares no columns")
        for column in self.columns:
            quote_identifier(column)
        if len(set(self.columns)) != len(self.columns):
            raise SchemaMismatch(f"Table {self.name} declares duplicate columns")

        if not self.primary_key:
            raise SchemaMismatch(f"Table {self.name} declares no primary key")
        missing = [c for c in self.primary_key if c not in self.columns]
        if missing:
            raise SchemaMismatch(
                f"Primary key column(s) {missing} of {self.name} are not table columns"
            )

    @property
    def qualified_name(self) -> str:
        """Quoted, schema-qualified name for use in SQL."""
        if self.schema:
            return f"{quote_identifier(self.schema)}.{quote_identifier(self.name)}"
        return quote_identifier(self.name)

    @property
    def value_columns(self) -> Tuple[str, ...]:
        """Columns outside the primary key."""
        return tuple(c for c in self.columns if c not in self.primary_key)

    def key_values(self, key: Any) -> Tuple[Any, ...]:
        """Normalize an id argument into primary-key order.

        Single-column keys take a scalar. Composite keys take a tuple/list in
        primary_key order or a mapping keyed by column name.

        Raises:
            SchemaMismatch: If the id's shape does not match the primary key
        """
        if len(self.primary_key) == 1:
            if isinstance(key, (tuple, list, dict)):
                raise SchemaMismatch(
                    f"{self.name} has a single-column key {self.primary_key[0]!r}; "
                    f"got {type(key).__name__}"
                )
            return (key,)

        if isinstance(key, Mapping):
            if set(key) != set(self.primary_key):
                raise SchemaMismatch(
                    f"{self.name} key expects columns {list(self.primary_key)}, "
                    f"got {sorted(key)}"
                )
            return tuple(key[c] for c in self.primary_key)

        if isinstance(key, (tuple, list)) and len(key) == len(self.primary_key):
            return tuple(key)

        raise SchemaMismatch(
            f"{self.name} has composite key {list(self.primary_key)}; got {key!r}"
        )


class RowModel(BaseModel):
    """Base class for every model that maps onto one table row.

    Subclasses set ``__table__`` and declare one field per table column.
    Override ``to_insert_columns`` / ``to_update_columns`` only when a
    column must be transformed on the way in.
    """
    model_config = ConfigDict(from_attributes=True)

    __table__: ClassVar[Table]

    def primary_key(self) -> Any:
        """Scalar for single-column keys, tuple for composite keys."""
        values = tuple(getattr(self, c) for c in self.__table__.primary_key)
        return values[0] if len(values) == 1 else values

    def to_insert_columns(self) -> Dict[str, Any]:
        """Every table column and its value, in table order."""
        return {c: getattr(self, c) for c in self.__table__.columns}

    def to_update_columns(self) -> Dict[str, Any]:
        """Columns overwritten when the row already exists (all non-key columns)."""
        return {c: getattr(self, c) for c in self.__table__.value_columns}

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "RowModel":
        """Build a model from an asyncpg.Record (or any column mapping)."""
        return cls.model_validate(dict(record))


def check_model(table: Table, model: Type[RowModel]) -> None:
    """Verify a row model can be read from and written to a table.

    Raises:
        SchemaMismatch: On any disagreement between model fields and table columns
    """
    bound = getattr(model, '__table__', None)
    if bound is not None and bound != table:
        raise SchemaMismatch(
            f"{model.__name__} is bound to table {bound.name}, not {table.name}"
        )

    fields = set(model.model_fields)
    columns = set(table.columns)
    if fields != columns:
        raise SchemaMismatch(
            f"{model.__name__} fields do not match {table.name} columns: "
            f"missing={sorted(columns - fields)} extra={sorted(fields - columns)}"
        )


def check_row(table: Table, row: RowModel, operation: str) -> None:
    """Verify the column sets a row produces for a write before SQL is built."""
    if operation == 'update':
        produced = row.to_update_columns()
        expected = table.value_columns
    else:
        produced = row.to_insert_columns()
        expected = table.columns
    if set(produced) != set(expected):
        raise SchemaMismatch(
            f"{type(row).__name__} produced columns {sorted(produced)} for {operation}; "
            f"{table.name} expects {sorted(expected)}"
        )
