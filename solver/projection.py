"""Projektion des Wochenplans auf konkrete Kalenderdaten.

Jede Zuweisung (Wochentag, Block) erzeugt einen Termin an jedem Datum des
Zeitraums mit passendem Wochentag. Feiertage entfallen ersatzlos, ausgefallene
Termine werden nicht verschoben.
"""

import datetime
import logging
from typing import Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, model_validator

from models.assignment import AssignmentSet
from models.holiday import Holiday
from models.snapshot import SchoolSnapshot
from models.timeslot import Slot

logger = logging.getLogger(__name__)


class DateRange(BaseModel):
    """Geschlossenes Datumsintervall [start, end]."""

    model_config = ConfigDict(frozen=True)

    start: datetime.date
    end: datetime.date

    @model_validator(mode="after")
    def check_order(self):
        if self.start > self.end:
            raise ValueError(f"Startdatum {self.start} liegt nach Enddatum {self.end}")
        return self

    def days(self) -> Iterable[datetime.date]:
        current = self.start
        while current <= self.end:
            yield current
            current += datetime.timedelta(days=1)

    def __contains__(self, day: datetime.date) -> bool:
        return self.start <= day <= self.end


class SessionOccurrence(BaseModel):
    """Ein datierter Termin einer Sitzung."""

    model_config = ConfigDict(frozen=True)

    date: datetime.date
    slot: Slot
    course_id: int
    subject_name: str
    teacher_name: str

    @property
    def sort_key(self) -> tuple:
        return (self.date, self.slot, self.subject_name, self.course_id)


class ScheduleProjector:
    """Erzeugt datierte Termine aus einem AssignmentSet.

    Namen von Fächern und Lehrkräften kommen aus dem Snapshot, zu dem das Set
    gehört; unbekannte IDs werden als "#<id>" angezeigt.
    """

    def __init__(self, snapshot: SchoolSnapshot) -> None:
        self.snapshot = snapshot
        self._subject_names = {s.id: s.name for s in snapshot.subjects}
        self._teacher_names = {t.id: t.name for t in snapshot.teachers}

    def project(
        self,
        assignment_set: AssignmentSet,
        course_id: Optional[int],
        date_range: DateRange,
        holidays: Iterable[Union[Holiday, datetime.date]] = (),
    ) -> list[SessionOccurrence]:
        """Termine im Zeitraum, aufsteigend nach Datum, dann Slot.

        course_id=None projiziert alle Kurse.
        """
        skip = {h.date if isinstance(h, Holiday) else h for h in holidays}
        assignments = (
            list(assignment_set) if course_id is None
            else assignment_set.for_course(course_id)
        )

        by_weekday: dict[int, list] = {}
        for a in assignments:
            by_weekday.setdefault(a.slot.day, []).append(a)

        occurrences: list[SessionOccurrence] = []
        skipped = 0
        for day in date_range.days():
            todays = by_weekday.get(day.weekday())
            if not todays:
                continue
            if day in skip:
                skipped += len(todays)
                continue
            for a in todays:
                occurrences.append(SessionOccurrence(
                    date=day,
                    slot=a.slot,
                    course_id=a.course_id,
                    subject_name=self._subject_names.get(a.subject_id, f"#{a.subject_id}"),
                    teacher_name=self._teacher_names.get(a.teacher_id, f"#{a.teacher_id}"),
                ))

        occurrences.sort(key=lambda o: o.sort_key)
        logger.debug(
            f"Projektion {date_range.start}..{date_range.end}: "
            f"{len(occurrences)} Termine, {skipped} wegen Feiertagen entfallen"
        )
        return occurrences
