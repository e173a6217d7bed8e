from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, model_validator


class ColumnTransform(str, Enum):
    copy = "copy"
    enum = "enum"
    default = "default"
    constant = "constant"
    pack = "pack"


class ColumnSpec(BaseModel):
    """How one destination column is produced from a source row."""

    name: str = Field(..., description="Destination column name")
    transform: ColumnTransform = ColumnTransform.copy
    source: Optional[str] = Field(
        default=None, description="Source column for copy/enum; defaults to name"
    )
    sources: List[str] = Field(
        default_factory=list,
        description="Source columns for default (first non-null wins) and pack",
    )
    domain: Optional[str] = Field(default=None, description="Enumeration domain for enum")
    default: Any = Field(default=None, description="Value for constant, fallback for default")
    optional: bool = Field(
        default=False,
        description="Omit the column when it is absent from either schema instead of failing",
    )

    @model_validator(mode="after")
    def check_transform(self) -> "ColumnSpec":
        if self.transform == ColumnTransform.enum and not self.domain:
            raise ValueError(f"column '{self.name}': enum transform requires a domain")
        if self.transform == ColumnTransform.pack and not self.sources:
            raise ValueError(f"column '{self.name}': pack transform requires sources")
        return self

    def source_columns(self) -> List[str]:
        """Source columns this column reads from."""
        if self.transform == ColumnTransform.constant:
            return []
        if self.transform in (ColumnTransform.copy, ColumnTransform.enum):
            return [self.source or self.name]
        if self.transform == ColumnTransform.default:
            return list(self.sources) or [self.source or self.name]
        return list(self.sources)


class SourceQuery(BaseModel):
    """Store-neutral description of the rows to read from the source namespace."""

    schema_name: str
    table: str
    columns: Optional[List[str]] = None
    not_null: List[str] = Field(default_factory=list)
    order_by: List[str] = Field(default_factory=list)


class TableSpec(BaseModel):
    """Declaration of one table's migration, validated once at construction."""

    name: str
    source_table: Optional[str] = None
    destination_table: Optional[str] = None
    key_columns: List[str] = Field(..., min_length=1)
    columns: List[ColumnSpec] = Field(..., min_length=1)
    update_columns: Optional[List[str]] = Field(
        default=None,
        description="Columns refreshed on conflict; None means every non-key column, [] means insert-only",
    )
    skip_null_columns: List[str] = Field(
        default_factory=list, description="Source rows with NULL in these columns are not read"
    )
    source_optional: bool = False
    required_source_columns: List[str] = Field(default_factory=list)
    depends_on: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_columns(self) -> "TableSpec":
        if self.source_table is None:
            self.source_table = self.name
        if self.destination_table is None:
            self.destination_table = self.name

        names = [column.name for column in self.columns]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"table '{self.name}': duplicate columns {', '.join(duplicates)}")

        by_name = {column.name: column for column in self.columns}
        for key in self.key_columns:
            if key not in by_name:
                raise ValueError(f"table '{self.name}': key column '{key}' is not declared")
            if by_name[key].optional:
                raise ValueError(f"table '{self.name}': key column '{key}' cannot be optional")
        for column in self.update_columns or []:
            if column not in by_name:
                raise ValueError(f"table '{self.name}': update column '{column}' is not declared")
            if column in self.key_columns:
                raise ValueError(f"table '{self.name}': key column '{column}' cannot be updated")
        return self

    def column(self, name: str) -> ColumnSpec:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(name)

    def key_source_columns(self) -> List[str]:
        return [self.column(key).source_columns()[0] for key in self.key_columns]

    def resolved_update_columns(self) -> List[str]:
        if self.update_columns is not None:
            return list(self.update_columns)
        return [column.name for column in self.columns if column.name not in self.key_columns]


class BackfillSpec(BaseModel):
    """A post-migration step that fills NULL destination values from another table.

    For each destination row whose ``column`` is NULL, the value is taken from
    the earliest ``source_table`` row (by ``order_by``) whose ``match_column``
    equals the row's ``key_column``.
    """

    name: str
    table: str = Field(..., description="Destination table being filled")
    column: str = Field(..., description="Destination column filled where NULL")
    key_column: str = "id"
    source_table: str = Field(..., description="Migrated table the values are read from")
    match_column: str = Field(..., description="Column of source_table that references key_column")
    value_column: str
    order_by: Optional[str] = Field(
        default=None, description="Earliest value wins; NULL sorts last"
    )
    depends_on: List[str] = Field(default_factory=list)


class TableStatus(str, Enum):
    completed = "completed"
    completed_with_errors = "completed_with_errors"
    skipped = "skipped"
    failed = "failed"


class RowFailure(BaseModel):
    """A source row that was not written, with the reason."""

    key: Dict[str, Any]
    error_type: str
    message: str


class TableReport(BaseModel):
    table: str
    status: TableStatus = TableStatus.completed
    read: int = 0
    written: int = 0
    unchanged: int = 0
    skipped: int = 0
    omitted_columns: List[str] = Field(default_factory=list)
    failures: List[RowFailure] = Field(default_factory=list)
    error: Optional[str] = Field(default=None, description="Table-level failure or skip reason")
    upstream_failures: List[str] = Field(
        default_factory=list, description="Parent tables that failed earlier in the run"
    )


class MigrationReport(BaseModel):
    """Per-table outcome of a run, in execution order."""

    source_schema: str
    target_schema: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    tables: Dict[str, TableReport] = Field(default_factory=dict)

    @computed_field
    @property
    def total_read(self) -> int:
        return sum(table.read for table in self.tables.values())

    @computed_field
    @property
    def total_written(self) -> int:
        return sum(table.written for table in self.tables.values())

    @computed_field
    @property
    def total_unchanged(self) -> int:
        return sum(table.unchanged for table in self.tables.values())

    @computed_field
    @property
    def total_skipped(self) -> int:
        return sum(table.skipped for table in self.tables.values())

    @computed_field
    @property
    def failed_tables(self) -> List[str]:
        return [name for name, table in self.tables.items() if table.status == TableStatus.failed]

    @computed_field
    @property
    def succeeded(self) -> bool:
        return not self.failed_tables and self.total_skipped == 0


class TableCount(BaseModel):
    table: str
    source: Optional[int] = None
    destination: Optional[int] = None

    @computed_field
    @property
    def matches(self) -> bool:
        return self.source is not None and self.source == self.destination
