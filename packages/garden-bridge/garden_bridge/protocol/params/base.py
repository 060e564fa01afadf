"""Shared base for typed command parameter models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireParams(BaseModel):
    """Parameters arrive camelCase on the wire (``startDate``, ``includeHidden``).

    Models declare snake_case fields; both spellings validate.  Unknown keys
    are ignored so newer controllers can send extra hints.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class NoParams(WireParams):
    pass
