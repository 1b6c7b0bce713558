from pydantic import BaseModel, Field, model_validator
from typing import Optional


# ─── WOCHENRASTER ───

class TimeGridConfig(BaseModel):
    """Festes Wochenraster, auf dem alle Blöcke liegen.

    Ein Slot ist ein Paar (Tag, Block):
    - Tag 0-basiert (0=Mo), Block 1-basiert (1. Block, 2. Block, ...)
    - Slots außerhalb dieses Rasters werden vom Solver ignoriert
    """
    # Anzahl Unterrichtstage pro Woche
    days_per_week: int = Field(5, ge=1, le=7,
        description="Unterrichtstage pro Woche")
    # Anzahl Blöcke pro Tag
    periods_per_day: int = Field(8, ge=1, le=16,
        description="Blöcke pro Tag")
    # Namen der Wochentage (Anzeige)
    day_names: list[str] = Field(
        default=["Mo", "Di", "Mi", "Do", "Fr"],
        description="Namen der Wochentage")
    # Beginn des ersten Blocks im Format "HH:MM"
    day_start: str = Field("08:00",
        description="Beginn des ersten Blocks")
    # Dauer eines Blocks in Minuten
    block_duration_minutes: int = Field(45, ge=10, le=180,
        description="Dauer eines Blocks in Minuten")

    @model_validator(mode='after')
    def validate_day_names(self):
        """Für jeden Unterrichtstag muss ein Name vorhanden sein."""
        if len(self.day_names) < self.days_per_week:
            raise ValueError(
                f"Nur {len(self.day_names)} Tagesnamen für "
                f"{self.days_per_week} Unterrichtstage")
        hour, _, minute = self.day_start.partition(":")
        if not (hour.isdigit() and minute.isdigit()) or int(hour) > 23 or int(minute) > 59:
            raise ValueError(f"Ungültige Startzeit '{self.day_start}' (erwartet HH:MM)")
        return self

    @property
    def slot_count(self) -> int:
        """Anzahl aller Slots im Wochenraster."""
        return self.days_per_week * self.periods_per_day

    def contains(self, day: int, period: int) -> bool:
        """True wenn (day, period) im Raster liegt."""
        return 0 <= day < self.days_per_week and 1 <= period <= self.periods_per_day

    def slot_index(self, day: int, period: int) -> int:
        """Laufender Index eines Slots (Bit-Position in den Belegungs-Bitmaps)."""
        return day * self.periods_per_day + (period - 1)

    def period_times(self, period: int) -> tuple[str, str]:
        """Beginn und Ende eines Blocks als ("HH:MM", "HH:MM")."""
        hour, _, minute = self.day_start.partition(":")
        start = int(hour) * 60 + int(minute) + (period - 1) * self.block_duration_minutes
        end = start + self.block_duration_minutes
        return (
            f"{start // 60 % 24:02d}:{start % 60:02d}",
            f"{end // 60 % 24:02d}:{end % 60:02d}",
        )

    def is_morning(self, period: int) -> bool:
        """Vormittagsblock: Beginn vor 12:00."""
        start, _ = self.period_times(period)
        return start < "12:00"

    def day_mask(self, day: int) -> int:
        """Bitmaske aller Blöcke eines Tages (vgl. slot_index)."""
        return ((1 << self.periods_per_day) - 1) << (day * self.periods_per_day)


# ─── SOLVER ───

class SolverConfig(BaseModel):
    """Solver-Konfiguration für die Backtracking-Suche."""
    # Maximale Anzahl Backtrack-Schritte pro Solve (Suchbudget)
    max_backtracks: int = Field(100_000, ge=1,
        description="Suchbudget: maximale Backtrack-Schritte")
    # Zeitlimit in Sekunden (0 = kein Limit); wird wie Budget-Erschöpfung behandelt
    time_limit_seconds: int = Field(0, ge=0, le=3600,
        description="Zeitlimit Solver (Sekunden, 0=kein Limit)")
    # Parallele Solves für unabhängige Kursmengen (0 = automatisch)
    num_workers: int = Field(0, ge=0,
        description="Parallele Solves (0=automatisch)")
    # Optionaler Seed für die Kandidaten-Reihenfolge (None = feste Reihenfolge)
    seed: Optional[int] = Field(None,
        description="Seed für die Kandidaten-Reihenfolge (leer = deterministisch sortiert)")


# ─── GESAMT-CONFIG ───

class SchedulerConfig(BaseModel):
    """Gesamtkonfiguration der Schule."""
    # Name der Schule
    school_name: str = Field("School Scheduler",
        description="Name der Schule")
    # Wochenstunden einer Vollzeit-Lehrkraft (Vorgabe für FULL-Verträge)
    full_time_weekly_hours: int = Field(38, ge=1, le=60,
        description="Wochenstunden Vollzeit")
    # Wochenraster
    time_grid: TimeGridConfig = Field(default_factory=TimeGridConfig)
    # Solver-Konfiguration
    solver: SolverConfig = Field(default_factory=SolverConfig)
