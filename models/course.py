"""Datenmodell für einen Kurs (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Course(BaseModel):
    """Ein Kurs (Klasse) einer Stufe, z.B. "1° Básico A".

    Die Pflichtfächer stehen nicht am Kurs, sondern ergeben sich aus dem
    Fächerkatalog seiner Stufe.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    name: str = Field(min_length=1)
    level: str = Field(min_length=1)
    head_teacher_id: Optional[int] = None  # Profesor jefe (optional)
    student_count: int = Field(0, ge=0)
