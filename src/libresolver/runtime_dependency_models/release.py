"""
Pydantic data models for the release host's JSON.

A release payload is validated once, in `ReleaseDescriptor.from_api`, so the
rest of the pipeline works with typed, immutable objects and never checks for
missing keys itself.
"""

from datetime import datetime
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from libresolver.libresolver_exceptions import InvalidReleasePayload
from libresolver.runtime_dependency_models.library import SemanticVersion


class Asset(BaseModel):
    """
    A single downloadable file attached to a release.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    name: str = Field(..., min_length=1, description="File name of the asset")
    size_bytes: int = Field(..., alias="size", ge=0, description="Size in bytes as reported by the host")
    download_url: str = Field(
        ..., alias="browser_download_url", min_length=1, description="Direct download URL"
    )


class ReleaseDescriptor(BaseModel):
    """
    A tagged release and its assets, in the order the host listed them.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    tag: str = Field(..., alias="tag_name", min_length=1)
    name: str = Field("", description="Human readable release title")
    published_at: Optional[datetime] = Field(None)
    is_prerelease: bool = Field(False, alias="prerelease")
    is_draft: bool = Field(False, alias="draft")
    body: str = Field("")
    assets: Tuple[Asset, ...] = Field(default_factory=tuple)

    @field_validator("name", "body", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def version(self) -> Optional[SemanticVersion]:
        return SemanticVersion.parse(self.tag)

    @property
    def asset_names(self) -> List[str]:
        return [asset.name for asset in self.assets]

    @classmethod
    def from_api(cls, payload: Any) -> "ReleaseDescriptor":
        """
        Validate a raw API payload.

        Raises:
            InvalidReleasePayload: If the payload is not a release object
        """
        if not isinstance(payload, dict):
            raise InvalidReleasePayload(
                f"Expected a release object, got {type(payload).__name__}",
                action="parsing release payload",
            )
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InvalidReleasePayload(
                "Malformed release payload", action="parsing release payload", cause=e
            ) from e
