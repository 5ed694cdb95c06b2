"""Pydantic v2 schemas for API request validation."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flowmatch.domain.enums import SuggestionSort, SuggestionStatus


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


def split_csv(value) -> list[str]:
    """Normalize a comma-separated param (or list of them) into a clean list."""
    if value is None:
        return []
    items = value if isinstance(value, (list, tuple)) else [value]
    return [
        part.strip()
        for item in items
        for part in str(item).split(",")
        if part.strip()
    ]


class SuggestionQuery(BaseModel):
    """Query-string filters for the suggestion listing.

    Accepts the camelCase names used by the web client as well as
    snake_case field names.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    search: str | None = None
    status: SuggestionStatus | None = None
    min_score: float | None = Field(None, alias="minScore", ge=0, le=100)
    max_distance: float | None = Field(None, alias="maxDistance", gt=0, le=500)
    sort: SuggestionSort = SuggestionSort.SCORE
    limit: int | None = Field(None, ge=1)
    include_ignored: bool = Field(False, alias="includeIgnored")
    tags: list[str] = []

    @field_validator("search", mode="before")
    @classmethod
    def _strip_search(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        if not value:
            raise ValueError("search must not be blank")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value):
        return split_csv(value)


class SuggestionAction(BaseModel):
    """Body of a save / ignore / contact action."""

    comment: str | None = Field(None, max_length=500)

    @field_validator("comment", mode="before")
    @classmethod
    def _strip_comment(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None
