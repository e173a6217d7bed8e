from typing import List

from pydantic import BaseModel, Field


class RewriteFlag(BaseModel):
    """A table-name token left alone for manual review."""

    path: str
    line: int
    table: str
    message: str


class RewriteReport(BaseModel):
    """Counts-only summary of a reference rewrite pass."""

    files_scanned: int = Field(default=0, description="Source files read")
    files_modified: int = Field(default=0, description="Files whose content changed")
    references_rewritten: int = Field(default=0, description="Data-access references changed")
    modified_paths: List[str] = Field(default_factory=list)
    flags: List[RewriteFlag] = Field(default_factory=list)
    dry_run: bool = False
