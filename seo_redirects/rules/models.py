from pydantic import BaseModel, ConfigDict, Field, field_validator

from seo_redirects.components.redirects import DEFAULT_RESERVED_PATHS


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class RedirectRules(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    default_status: int = Field(301, description="Status used when none is given")
    reserved_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_RESERVED_PATHS))
    skip_prefixes: list[str] = Field(default_factory=lambda: ["/api/"])
    track_hits: bool = True
    async_hits: bool = True
    hit_workers: int = Field(2, ge=1)
    export_page_size: int = Field(2000, ge=1)
    list_per_page: int = Field(20, ge=1)

    @field_validator("default_status")
    @classmethod
    def _allowed_status(cls, v: int) -> int:
        if v not in (301, 302, 307, 308):
            raise ValueError("default_status must be 301, 302, 307 or 308")
        return v


class Rules(BaseModel):
    project: ProjectRules
    redirects: RedirectRules = Field(default_factory=RedirectRules)
