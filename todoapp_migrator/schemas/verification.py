from typing import Dict, List

from pydantic import BaseModel, Field, computed_field


class TableVerification(BaseModel):
    table: str
    exists: bool = True
    expected: int = 0
    found: int = 0
    missing: List[str] = Field(default_factory=list)
    extra: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def ok(self) -> bool:
        return self.exists and not self.missing


class SchemaVerificationReport(BaseModel):
    schema_name: str
    tables: Dict[str, TableVerification] = Field(default_factory=dict)

    @computed_field
    @property
    def ok(self) -> bool:
        return all(table.ok for table in self.tables.values())
