# media_models.py
# Description: Pydantic models for catalog records and the caller-side field validation.
#
# Imports
from typing import Any, Dict, List, Mapping, Optional
#
# 3rd-party Libraries
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
#
# Local Imports
from media_catalog.core.Utils.Utils import coerce_rating
#
#######################################################################################################################
#
# Schemas:

# Python attribute name -> persisted (camelCase) key
FIELD_ALIASES: Dict[str, str] = {
    "date_added": "dateAdded",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

# Keys that are set once at creation
IMMUTABLE_KEYS = frozenset({"id", "dateAdded", "createdAt"})


class MediaRecord(BaseModel):
    """A single cataloged media entry, as persisted and exported."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int = Field(..., description="Unique, clock-derived record id")
    type: str = Field("", description="Category, e.g. movie / music album / novel")
    title: str = Field("", description="Title of the item")
    rating: int = Field(0, description="0-5, where 0 means unrated")
    genre: Optional[str] = Field("", description="Free-form genre")
    notes: Optional[str] = Field("", description="Free-form notes")
    date_added: Optional[str] = Field(None, alias="dateAdded", description="YYYY-MM-DD of creation")
    created_at: Optional[str] = Field(None, alias="createdAt", description="ISO-8601 creation timestamp")
    updated_at: Optional[str] = Field(None, alias="updatedAt", description="ISO-8601 last mutation timestamp")

    @field_validator("type", "title", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_storage_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class MediaCreate(BaseModel):
    """Fields a caller collects before adding a record. Mirrors the add-media form rules."""
    type: str = Field(..., min_length=1, description="Media type; required")
    title: str = Field(..., min_length=1, description="Title; required, surrounding whitespace ignored")
    rating: int = Field(0, description="Loosely parsed rating, 0 when missing")
    genre: str = ""
    notes: str = ""

    @field_validator("type", "title", "genre", "notes", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("rating", mode="before")
    @classmethod
    def _parse_rating(cls, value: Any) -> int:
        return coerce_rating(value)


_FIELD_MESSAGES = {
    "title": "Please enter a title!",
    "type": "Please select a media type!",
}


def validate_media_fields(fields: Mapping[str, Any]) -> List[str]:
    """
    Returns the user-facing messages for invalid add-media fields, title first.
    An empty list means the fields can be handed to the store.
    """
    try:
        MediaCreate.model_validate(dict(fields))
    except ValidationError as e:
        failed = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
        messages = [msg for name, msg in _FIELD_MESSAGES.items() if name in failed]
        messages.extend(
            f"Invalid value for '{name}'." for name in sorted(failed) if name not in _FIELD_MESSAGES
        )
        return messages
    return []

#
# End of media_models.py
#######################################################################################################################
