"""Pydantic models describing catalog records and query parameters."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Mapping

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_serializer,
    field_validator,
)

from .errors import ValidationError
from .utils import coerce_media_list, plant_initials

SortField = Literal["name", "price", "id"]
SortDirection = Literal["asc", "desc"]

SORT_COLUMNS: dict[str, str] = {
    "name": "common_name",
    "price": "price",
    "id": "id",
}
_SORT_FIELD_ALIASES = {
    "common_name": "name",
    "common-name": "name",
    "identifier": "id",
}
_SORT_DIRECTION_ALIASES = {
    "ascending": "asc",
    "descending": "desc",
}


class DataSource(str, Enum):
    """Where a cached page or item was served from."""

    REMOTE = "remote"
    FALLBACK = "fallback"


class Item(BaseModel):
    """A single plant record as held by the remote store."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    scientific_name: str | None = None
    common_name: str | None = None
    native_region: str | None = None
    type: str | None = None
    soil_type: str | None = None
    sun_exposure: str | None = None
    wind_tolerance: str | None = None
    growth_habit: str | None = None
    mature_height_width: str | None = None
    flowering_season: str | None = None
    flower_colour: str | None = None
    media: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("media", "images"),
        serialization_alias="images",
    )
    price: Decimal | None = Field(default=None, ge=0)
    acquired: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("acquired", "bought"),
        serialization_alias="bought",
    )

    @field_validator("media", mode="before")
    @classmethod
    def _parse_media(cls, value: object) -> list[str]:
        return coerce_media_list(value)

    @field_serializer("price", when_used="json")
    def _serialize_price(self, value: Decimal | None) -> float | None:
        return float(value) if value is not None else None

    @property
    def primary_media(self) -> str | None:
        """Return the media reference shown first, if any."""

        return self.media[0] if self.media else None

    def display_name(self) -> str:
        """Return the most readable name available for the plant."""

        for candidate in (self.common_name, self.scientific_name):
            if candidate and candidate.strip():
                return candidate.strip()
        return f"Plant {self.id}"

    def initials(self) -> str:
        return plant_initials(self.common_name, self.scientific_name)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON representation using the store's column names."""

        return self.model_dump(mode="json", by_alias=True)


class FilterSet(BaseModel):
    """Active search and filter predicates for a catalog query.

    Blank strings never restrict results but still count as values distinct
    from an absent predicate.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    search: str | None = None
    type: str | None = None
    sun_exposure: str | None = Field(
        default=None, validation_alias=AliasChoices("sun_exposure", "sunExposure")
    )
    wind_tolerance: str | None = Field(
        default=None,
        validation_alias=AliasChoices("wind_tolerance", "windTolerance"),
    )
    flowering_season: str | None = Field(
        default=None,
        validation_alias=AliasChoices("flowering_season", "floweringSeason"),
    )
    acquired: bool | None = Field(
        default=None, validation_alias=AliasChoices("acquired", "bought")
    )

    @classmethod
    def coerce(cls, value: "FilterSet | Mapping[str, Any] | None") -> "FilterSet":
        """Build a filter set from caller input, rejecting malformed values."""

        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError("Filters must be a FilterSet or a mapping")
        try:
            return cls.model_validate(dict(value))
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid filters: {exc}") from exc

    def term(self, name: str) -> str | None:
        """Return the trimmed value of a text predicate when it is active."""

        raw = getattr(self, name)
        if raw is None:
            return None
        cleaned = raw.strip()
        return cleaned or None

    def with_search(self, search: str | None) -> "FilterSet":
        return self.model_copy(update={"search": search})


class SortKey(BaseModel):
    """Field and direction used to order catalog results."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    field: SortField = "name"
    direction: SortDirection = "asc"

    @field_validator("field", mode="before")
    @classmethod
    def _normalize_field(cls, value: object) -> object:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return _SORT_FIELD_ALIASES.get(lowered, lowered)
        return value

    @field_validator("direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value: object) -> object:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return _SORT_DIRECTION_ALIASES.get(lowered, lowered)
        return value

    @classmethod
    def coerce(cls, value: "SortKey | Mapping[str, Any] | None") -> "SortKey":
        """Build a sort key from caller input, defaulting to name ascending."""

        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError("Sort must be a SortKey or a mapping")
        try:
            return cls.model_validate(dict(value))
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid sort: {exc}") from exc

    @property
    def column(self) -> str:
        return SORT_COLUMNS[self.field]

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


class ItemPatch(BaseModel):
    """Partial update; only explicitly assigned fields reach the store."""

    model_config = ConfigDict(populate_by_name=True)

    media: list[str] | None = Field(default=None, serialization_alias="images")
    acquired: bool | None = Field(default=None, serialization_alias="bought")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set


@dataclass(slots=True)
class Page:
    """One bounded slice of ordered results plus continuation state."""

    items: tuple[Item, ...]
    index: int
    next_cursor: int | None
    total_count: int
    source: DataSource = DataSource.REMOTE

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


@dataclass(slots=True)
class RemotePage:
    """Rows returned by one ranged list request."""

    items: list[Item]
    exact_count: int
