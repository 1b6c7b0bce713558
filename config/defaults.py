from config.schema import (
    TimeGridConfig,
    SolverConfig,
    SchedulerConfig,
)


def default_time_grid() -> TimeGridConfig:
    """Standard-Wochenraster: 5 Tage × 8 Blöcke à 45 Minuten ab 08:00.

    Blockraster:
    1. Block  08:00 - 08:45
    2. Block  08:45 - 09:30
    ...
    8. Block  13:15 - 14:00

    Pausen werden nicht modelliert: die Engine plant nur Blöcke, die
    Darstellung der Uhrzeiten ist reine Anzeige.
    """
    return TimeGridConfig(
        days_per_week=5,
        periods_per_day=8,
        day_names=["Mo", "Di", "Mi", "Do", "Fr"],
        day_start="08:00",
        block_duration_minutes=45,
    )


def default_solver_config() -> SolverConfig:
    """Solver-Defaults: 100.000 Backtracks, kein Zeitlimit, feste Reihenfolge."""
    return SolverConfig(max_backtracks=100_000, time_limit_seconds=0, num_workers=0)


def default_scheduler_config() -> SchedulerConfig:
    """Komplette Default-Konfiguration."""
    return SchedulerConfig(
        school_name="School Scheduler",
        full_time_weekly_hours=38,
        time_grid=default_time_grid(),
        solver=default_solver_config(),
    )


# ─── FÄCHERKATALOG ───
# Stufe → Fach → (Blöcke pro Woche, Typ, Farbe).
# Wird nur vom Testdaten-Generator verwendet; im Betrieb liefert der
# Fächer-Dienst den Katalog.

LEVELS: list[str] = ["parvulario", "basico", "media"]

SUBJECT_CATALOG: dict[str, dict[str, tuple[int, str, str]]] = {
    "parvulario": {
        "Lenguaje Verbal":        (4, "nucleo", "#F4B183"),
        "Pensamiento Matemático": (4, "nucleo", "#9DC3E6"),
        "Exploración del Entorno": (3, "nucleo", "#A9D18E"),
        "Educación Física":       (2, "deporte", "#FFD966"),
        "Música":                 (2, "artes", "#D5A6E6"),
    },
    "basico": {
        "Lenguaje":               (6, "lenguaje", "#F4B183"),
        "Matemáticas":            (6, "ciencias", "#9DC3E6"),
        "Ciencias Naturales":     (4, "ciencias", "#A9D18E"),
        "Historia":               (4, "humanidades", "#C9C9C9"),
        "Inglés":                 (3, "lenguaje", "#FFE699"),
        "Educación Física":       (3, "deporte", "#FFD966"),
        "Artes Visuales":         (2, "artes", "#D5A6E6"),
        "Música":                 (2, "artes", "#E2B0FF"),
    },
    "media": {
        "Lenguaje":               (6, "lenguaje", "#F4B183"),
        "Matemáticas":            (7, "ciencias", "#9DC3E6"),
        "Biología":               (3, "ciencias", "#A9D18E"),
        "Química":                (3, "ciencias", "#8FD9C4"),
        "Física":                 (3, "ciencias", "#7FB3D5"),
        "Historia":               (4, "humanidades", "#C9C9C9"),
        "Inglés":                 (4, "lenguaje", "#FFE699"),
        "Educación Física":       (2, "deporte", "#FFD966"),
        "Filosofía":              (2, "humanidades", "#BDB0D0"),
    },
}
