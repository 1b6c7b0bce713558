"""Datenmodell für ein Unterrichtsfach (Pydantic v2)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PreferredTime(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    ANY = "any"


class Subject(BaseModel):
    """Ein Fach aus dem Fächerkatalog einer Stufe.

    weekly_blocks ist maßgeblich: so viele Blöcke braucht jeder Kurs der
    Stufe pro Woche in diesem Fach. Pro Kurs und Tag gilt zusätzlich:
    höchstens max_daily_blocks Blöcke (None = ohne Grenze) und nie drei
    Blöcke des Fachs direkt hintereinander.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    name: str = Field(min_length=1)
    level: str = Field(min_length=1)       # "parvulario", "basico", "media"
    weekly_blocks: int = Field(ge=1)       # Pflicht-Blöcke pro Woche
    max_daily_blocks: Optional[int] = Field(default=None, ge=1)
    preferred_time: PreferredTime = PreferredTime.ANY   # Slots dieser Tageszeit zuerst
    type: str = "general"
    color: Optional[str] = None            # "#RRGGBB" (Anzeige)

    @field_validator("preferred_time", mode="before")
    @classmethod
    def normalize_preferred_time(cls, v):
        if v is None:
            return PreferredTime.ANY
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def prefers(self, morning: bool) -> bool:
        """True wenn ein Vormittags- bzw. Nachmittagsblock der Vorgabe entspricht."""
        if self.preferred_time == PreferredTime.ANY:
            return True
        return morning == (self.preferred_time == PreferredTime.MORNING)
