from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

TERMINAL_STATES = ("ready", "error")


class ComponentRecord(BaseModel):
    """One placed, configured building block of a page."""

    id: str
    type: str
    order: int = 0
    properties: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("properties", "props"),
    )


class PageRecord(BaseModel):
    id: str
    title: str
    slug: str = Field(pattern=r"^[a-z0-9]+(?:[-_][a-z0-9]+)*$")
    content: str = ""
    is_published: bool = Field(
        default=True,
        validation_alias=AliasChoices("is_published", "isPublished"),
    )


class SiteDescriptor(BaseModel):
    name: str
    description: str = ""
    pages: list[PageRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def _slugs_unique(self) -> "SiteDescriptor":
        seen: set[str] = set()
        for page in self.pages:
            if page.slug in seen:
                raise ValueError(f"Duplicate page slug: {page.slug}")
            seen.add(page.slug)
        return self


class VirtualFile(BaseModel):
    """An in-memory (path, content) pair not yet written anywhere."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: bytes | str = ""

    @property
    def data(self) -> bytes:
        if isinstance(self.content, bytes):
            return self.content
        return self.content.encode("utf-8")


class RemoteSite(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    url: str | None = None
    ssl_url: str | None = None
    admin_url: str | None = None


class RemoteDeploy(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    site_id: str | None = None
    state: str = "new"
    url: str | None = None
    ssl_url: str | None = None
    deploy_url: str | None = None
    deploy_ssl_url: str | None = None
    error_message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class DeploymentRequest(BaseModel):
    # Errors must never echo the request back; it carries the access token
    model_config = ConfigDict(hide_input_in_errors=True)

    site: SiteDescriptor
    components: list[ComponentRecord] = Field(default_factory=list)
    site_name: str
    token: str | None = None
    demo_mode: bool = False
    target_format: str | None = None
    project_id: str | None = None
    # Redeploy to an existing site instead of creating one
    site_id: str | None = None


class DeploymentResult(BaseModel):
    success: bool
    live_url: str | None = None
    preview_url: str | None = None
    deploy_id: str | None = None
    site_id: str | None = None
    site_name: str | None = None
    state: str | None = None
    error_type: str | None = None
    error_message: str | None = None
    hint: str | None = None
    is_demo: bool = False

    def to_dict(self) -> Mapping[str, Any]:
        return self.model_dump(exclude_none=True)


class DeploymentHistoryRecord(BaseModel):
    project_id: str | None = None
    site_name: str
    url: str
    deploy_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: str = "success"


def describe_validation_error(error: ValidationError) -> str:
    """Render a pydantic error as `loc: msg` pairs, leaving out the offending input."""
    parts = []
    for item in error.errors(include_url=False, include_context=False, include_input=False):
        loc = ".".join(str(part) for part in item["loc"]) or "request"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


__all__ = [
    "ComponentRecord",
    "PageRecord",
    "SiteDescriptor",
    "VirtualFile",
    "RemoteSite",
    "RemoteDeploy",
    "DeploymentRequest",
    "DeploymentResult",
    "DeploymentHistoryRecord",
    "TERMINAL_STATES",
    "describe_validation_error",
]
