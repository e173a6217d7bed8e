from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class EnumDomain(BaseModel):
    """Mapping rules from legacy values onto one destination enumeration."""

    members: List[str] = Field(..., min_length=1, description="Destination enumeration values")
    rules: Dict[str, str] = Field(
        default_factory=dict, description="Legacy value -> destination value"
    )
    passthrough: bool = Field(
        default=True, description="Whether destination members map onto themselves"
    )
    fallback: Optional[str] = Field(
        default=None, description="Destination value for anything unrecognized; None raises"
    )

    @model_validator(mode="after")
    def check_targets(self) -> "EnumDomain":
        allowed = set(self.members)
        invalid = sorted({target for target in self.rules.values() if target not in allowed})
        if invalid:
            raise ValueError(f"rules map onto non-members: {', '.join(invalid)}")
        if self.fallback is not None and self.fallback not in allowed:
            raise ValueError(f"fallback '{self.fallback}' is not a member")
        return self


class MappingCatalog(BaseModel):
    """All enumeration domains known to a migration run, keyed by name."""

    domains: Dict[str, EnumDomain] = Field(default_factory=dict)

    def merged(self, overrides: "MappingCatalog") -> "MappingCatalog":
        """Return a copy where domains from ``overrides`` replace ours by name."""
        return MappingCatalog(domains={**self.domains, **overrides.domains})
