"""Datenmodell für eine Lehrkraft (Pydantic v2)."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models.timeslot import Slot


class ContractType(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"


class Teacher(BaseModel):
    """Repräsentiert eine einzelne Lehrkraft."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    name: str = Field(min_length=1)                 # "Pérez, Ana"
    contract_type: ContractType = ContractType.FULL
    weekly_hours: int = Field(ge=1)                 # Obergrenze Blöcke/Woche (nie überschreiten)
    subject_ids: tuple[int, ...] = ()               # Fächer, für die die Lehrkraft qualifiziert ist
    available_blocks: tuple[Slot, ...] = ()         # Einzige Slots, in denen sie unterrichten darf
    course_ids: tuple[int, ...] = ()                # Zugeordnete Kurse (leer = alle Kurse)

    @field_validator("contract_type", mode="before")
    @classmethod
    def normalize_contract_type(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("subject_ids", "course_ids", mode="before")
    @classmethod
    def normalize_id_tuples(cls, v):
        # Sortiert + dedupliziert → stabile Reihenfolge und stabiles JSON
        return tuple(sorted({int(s) for s in (v or ())}))

    @field_validator("available_blocks", mode="before")
    @classmethod
    def parse_available_blocks(cls, v):
        try:
            return tuple(sorted({Slot.parse(token) for token in (v or ())}))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Ungültiger Verfügbarkeits-Block: {e}") from e

    @property
    def is_partial(self) -> bool:
        return self.contract_type == ContractType.PARTIAL

    def is_qualified_for(self, subject_id: int) -> bool:
        """True wenn die Lehrkraft das Fach unterrichten darf."""
        return subject_id in self.subject_ids

    def teaches_course(self, course_id: int) -> bool:
        """True wenn die Lehrkraft dem Kurs zugeordnet ist (oder keinem bestimmten)."""
        return not self.course_ids or course_id in self.course_ids

    def is_available(self, slot: Slot) -> bool:
        """True wenn der Slot in available_blocks liegt."""
        return slot in self.available_blocks
