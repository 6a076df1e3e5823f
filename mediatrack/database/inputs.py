"""
Validated write payloads accepted by the entity store.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mediatrack.database.models import ReviewVisibility
from mediatrack.errors import ValidationFailed


class StoreInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    @classmethod
    def build(cls, **data):
        """Construct the payload, reporting bad fields as ``ValidationFailed``."""
        try:
            return cls(**data)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise ValidationFailed(
                f"Invalid {cls.__name__}: {', '.join(fields)}",
                errors=e.errors(include_url=False),
            ) from e


Rating = Optional[Decimal]

RATING_STEP = Decimal("0.01")


def _quantize_rating(value: Rating) -> Rating:
    # matches the Numeric(5, 2) column, so a fresh write reads back unchanged
    return None if value is None else value.quantize(RATING_STEP)


class ReviewInput(StoreInput):
    user_id: int = Field(ge=1)
    metadata_id: int = Field(ge=1)
    rating: Rating = Field(default=None, ge=0, le=100, decimal_places=2)
    text: Optional[str] = None
    visibility: ReviewVisibility = ReviewVisibility.PRIVATE
    spoiler: bool = False
    extra_information: Optional[dict] = None
    identifier: Optional[str] = Field(default=None, max_length=200)
    posted_on: Optional[datetime] = None

    _rating = field_validator("rating")(_quantize_rating)


class ReviewUpdate(StoreInput):
    """Only the fields explicitly set are written."""

    rating: Rating = Field(default=None, ge=0, le=100, decimal_places=2)
    text: Optional[str] = None
    visibility: Optional[ReviewVisibility] = None
    spoiler: Optional[bool] = None
    extra_information: Optional[dict] = None

    _rating = field_validator("rating")(_quantize_rating)

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        # visibility and spoiler are not nullable columns
        for key in ("visibility", "spoiler"):
            if key in data and data[key] is None:
                del data[key]
        return data


class SeenInput(StoreInput):
    user_id: int = Field(ge=1)
    metadata_id: int = Field(ge=1)
    progress: int = Field(default=100, ge=0, le=100)
    started_on: Optional[date] = None
    finished_on: Optional[date] = None
    extra_information: Optional[dict] = None
