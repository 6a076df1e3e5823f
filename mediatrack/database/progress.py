"""
Structured progress payload attached to reviews and progress records.

Stored as JSON; validated with pydantic before it reaches the database.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from mediatrack.database.models import MetadataLot
from mediatrack.errors import ValidationFailed


class ShowExtraInformation(BaseModel):
    """Which episode of a show the record refers to"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["show"] = "show"
    season: int = Field(ge=0)
    episode: int = Field(ge=0)


class PodcastExtraInformation(BaseModel):
    """Which podcast episode the record refers to"""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["podcast"] = "podcast"
    episode: int = Field(ge=0)


ExtraInformation = Annotated[
    Union[ShowExtraInformation, PodcastExtraInformation],
    Field(discriminator="kind"),
]

_adapter: TypeAdapter = TypeAdapter(ExtraInformation)

_ALLOWED_LOTS = {
    "show": MetadataLot.SHOW,
    "podcast": MetadataLot.PODCAST,
}


def parse_extra_information(payload: Optional[dict]):
    """Validate a raw payload; ``None`` passes through."""
    if payload is None:
        return None
    try:
        return _adapter.validate_python(payload)
    except ValidationError as e:
        raise ValidationFailed(
            f"Malformed extra information: {e.error_count()} error(s)",
            errors=e.errors(include_url=False),
        ) from e


def validate_for_lot(payload: Optional[dict], lot: MetadataLot) -> Optional[dict]:
    """
    Validate a payload against the lot of the item it describes.

    Returns the normalised JSON form to store.
    """
    parsed = parse_extra_information(payload)
    if parsed is None:
        return None
    if _ALLOWED_LOTS[parsed.kind] != lot:
        raise ValidationFailed(
            f"A {parsed.kind} payload cannot describe a {lot.value} item",
            kind=parsed.kind,
            lot=lot.value,
        )
    return parsed.model_dump()


def load_extra_information(stored: Optional[dict]):
    """Parse a stored payload, ignoring rows that no longer validate."""
    if not stored:
        return None
    try:
        return _adapter.validate_python(stored)
    except ValidationError:
        return None
