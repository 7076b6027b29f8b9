"""
Pydantic models for composition data.

``CompositionCreate`` only describes the shape of the request; range
and format rules are enforced by the service layer through the
shared field validator table, so creation and single‑field patches
accept exactly the same values.  Integer fields are strict so that a
JSON boolean or float is refused rather than coerced to an ``int``.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, StrictInt


class CompositionBase(BaseModel):
    title: str = Field(..., example="Moonlight Sonata")
    author: str = Field(..., example="Ludwig van Beethoven")
    length_seconds: StrictInt = Field(..., example=900)
    year: StrictInt = Field(..., example=1801)
    difficulty: StrictInt = Field(..., example=2, description="0 = easy, 1 = medium, 2 = hard")
    page_count: StrictInt = Field(..., example=14)
    video_url: str = Field(..., example="https://www.youtube.com/watch?v=4Tr0otuiQuU")
    sheet_url: str = Field(..., example="https://imslp.org/wiki/Piano_Sonata_No.14")


class CompositionCreate(CompositionBase):
    """Schema for adding a composition.  ``adder_id`` comes from the token."""
    pass


class CompositionRead(CompositionBase):
    """Schema for reading a composition from the API."""

    id: int
    added_at: str
    adder_id: Optional[int]
    comment_count: int

    model_config = {
        "from_attributes": True,
    }


class CompositionRemoved(BaseModel):
    """Summary returned after a composition has been removed."""

    id: int
    title: str
    author: str
    length_seconds: int
    year: int
    difficulty: int
    comments_removed: int = 0


class PatchRequest(BaseModel):
    """A single named‑field update.

    ``field`` is one of ``title``, ``author``, ``length``, ``year``,
    ``diff``, ``pages``, ``video`` or ``sheet``.  Any other name is
    reported back as ``unknown-field`` rather than rejected.
    """

    field: str = Field(..., example="pages")
    value: Any = Field(..., example="12")


class PatchResult(BaseModel):
    """Outcome of a single‑field patch.

    ``reason`` is ``applied``, ``unknown-field`` or ``validation-failed``;
    ``status`` keeps the older ``changed<Field>`` / ``noChange`` strings.
    """

    applied: bool
    field: str
    reason: str
    status: str
    new_value: Optional[Union[int, str]] = None
