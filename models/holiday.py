"""Datenmodell für einen Feiertag (Pydantic v2)."""

import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Holiday(BaseModel):
    """Ein unterrichtsfreier Kalendertag.

    Ein Feiertag entfernt nur die Termine an diesem Datum; das wöchentliche
    Muster bleibt unverändert.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: Optional[int] = None
    date: datetime.date
    description: str = Field("", max_length=200)
