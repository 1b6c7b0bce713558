"""Wochenplan-Engine — Haupt-CLI.

Verwendung:
  wochenplan config init                  Default-Konfiguration anlegen
  wochenplan config show                  Konfiguration anzeigen
  wochenplan generate                     Testdaten als JSON-Export erzeugen
  wochenplan validate                     Referenz- und Machbarkeits-Check
  wochenplan solve                        Wochenplan berechnen
  wochenplan show <kurs-id>               Wochenraster eines Kurses anzeigen
  wochenplan schedule <kurs-id>           Datierte Termine eines Kurses
  wochenplan export                       Excel exportieren
  wochenplan run                          generate → solve → export
"""

import datetime
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()

# Standard-Pfade
DEFAULT_DATA_JSON = Path("output/school_data.json")
DEFAULT_RESULT_JSON = Path("output/solve_result.json")
DEFAULT_EXCEL = Path("output/wochenplan.xlsx")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_config_or_abort():
    """Lädt die Konfiguration (oder Defaults) oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    try:
        return mgr, mgr.load_or_default()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _load_source_or_abort(json_path: str):
    """Öffnet die JSON-Datenquelle oder bricht mit Fehlermeldung ab."""
    from data.source import DataSourceError, JsonDataSource

    p = Path(json_path)
    if not p.exists():
        console.print(
            f"[red]Keine Datendatei gefunden: {p}[/red]\n"
            "Verwenden Sie zuerst [bold]wochenplan generate[/bold]."
        )
        sys.exit(1)
    try:
        return JsonDataSource(p)
    except (DataSourceError, ValidationError) as e:
        console.print(f"[red bold]Datendatei ungültig:[/red bold]\n{e}")
        sys.exit(1)


def _parse_date(value: Optional[str], default: datetime.date) -> datetime.date:
    if value is None:
        return default
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Ungültiges Datum '{value}' (erwartet YYYY-MM-DD)")


def _solve(config, source, max_backtracks: Optional[int], seed: Optional[int]):
    """Gemeinsamer Solve-Schritt für solve und run."""
    from data.source import load_snapshot
    from models.snapshot import SnapshotValidationError
    from solver.engine import TimetableEngine

    from config.manager import ConfigManager

    try:
        config = ConfigManager.with_solver_overrides(
            config, max_backtracks=max_backtracks, seed=seed
        )
    except ValidationError as e:
        raise click.BadParameter(str(e))

    snapshot = load_snapshot(source, config.time_grid)
    try:
        result = TimetableEngine(config).solve_snapshot(snapshot)
    except SnapshotValidationError as e:
        console.print(f"[red bold]Eingabedaten fehlerhaft:[/red bold]\n{e}")
        sys.exit(1)
    return snapshot, result


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anlegen oder anzeigen."""


@cmd_config.command("init")
@click.option("--force", is_flag=True, default=False, help="Bestehende Datei überschreiben.")
def config_init(force: bool):
    """Legt die Default-Konfiguration als YAML an."""
    from config.defaults import default_scheduler_config
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check() and not force:
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]\n"
            "Mit [bold]--force[/bold] überschreiben."
        )
        return
    mgr.save(default_scheduler_config())


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    mgr, config = _load_config_or_abort()

    console.print(Panel(
        f"[bold]{config.school_name}[/bold]  |  "
        f"Vollzeit: {config.full_time_weekly_hours} Blöcke/Woche",
        title="Konfiguration",
        border_style="cyan",
    ))

    tg = config.time_grid
    table = Table(title="Wochenraster", box=box.ROUNDED)
    table.add_column("Block")
    table.add_column("Beginn")
    table.add_column("Ende")
    for period in range(1, tg.periods_per_day + 1):
        start, end = tg.period_times(period)
        table.add_row(str(period), start, end)
    console.print(table)
    console.print(
        f"[bold]Tage:[/bold] {', '.join(tg.day_names[:tg.days_per_week])} "
        f"({tg.slot_count} Slots/Woche)"
    )

    sc = config.solver
    console.print(
        f"[bold]Solver:[/bold] max. {sc.max_backtracks} Backtracks | "
        f"Zeitlimit {sc.time_limit_seconds or '–'}s | "
        f"Worker {sc.num_workers or 'auto'} | Seed {sc.seed if sc.seed is not None else '–'}"
    )


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--courses-per-grade", default=1, show_default=True,
              help="Parallelkurse je Jahrgang.")
@click.option("--year", default=None, type=int, help="Jahr der Feiertage (Default: aktuelles).")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON),
              help="Pfad für den JSON-Export.")
@click.option("--validate/--no-validate", "run_validate", default=True,
              help="Machbarkeits-Check nach Generierung.")
def cmd_generate(seed: int, courses_per_grade: int, year: Optional[int],
                 json_path: str, run_validate: bool):
    """Erzeugt Testdaten (Fächer, Kurse, Lehrkräfte, Feiertage)."""
    mgr, config = _load_config_or_abort()
    from data.fake_data import FakeDataGenerator
    from data.source import JsonDataSource, load_snapshot

    console.print("[bold]Testdaten werden generiert...[/bold]")
    gen = FakeDataGenerator(config, seed=seed, courses_per_grade=courses_per_grade)
    source = gen.generate_source(year)
    snapshot = load_snapshot(source, config.time_grid)
    gen.print_summary(snapshot)
    console.print(f"\n[dim]{snapshot.summary()}[/dim]")

    if run_validate:
        snapshot.validate_feasibility().print_rich()

    out_path = JsonDataSource.write(source, Path(json_path))
    console.print(f"[green]✓[/green] JSON gespeichert: {out_path}")


# ─── VALIDATE ─────────────────────────────────────────────────────────────────

@click.command("validate")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON),
              help="Pfad zur JSON-Datendatei.")
def cmd_validate(json_path: str):
    """Führt Referenz- und Machbarkeits-Check auf dem Datensatz durch."""
    from data.source import load_snapshot
    from models.snapshot import SnapshotValidationError

    mgr, config = _load_config_or_abort()
    source = _load_source_or_abort(json_path)
    snapshot = load_snapshot(source, config.time_grid)

    console.print(f"\n{snapshot.summary()}\n")
    try:
        report = snapshot.validate_feasibility()
    except SnapshotValidationError as e:
        console.print(f"[red bold]Eingabedaten fehlerhaft:[/red bold]\n{e}")
        sys.exit(1)
    report.print_rich()

    sys.exit(0 if report.is_feasible else 1)


# ─── SOLVE ────────────────────────────────────────────────────────────────────

@click.command("solve")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON),
              help="Pfad zur JSON-Datendatei.")
@click.option("--output", "-o", default=str(DEFAULT_RESULT_JSON),
              help="Pfad für das Ergebnis (JSON).")
@click.option("--max-backtracks", default=None, type=int,
              help="Suchbudget (überschreibt die Konfiguration).")
@click.option("--seed", default=None, type=int,
              help="Seed für die Kandidaten-Reihenfolge.")
@click.option("--validate-solution", is_flag=True, default=False,
              help="Lösung nach dem Solve unabhängig prüfen.")
def cmd_solve(json_path: str, output: str, max_backtracks: Optional[int],
              seed: Optional[int], validate_solution: bool):
    """Berechnet den Wochenplan und speichert Ergebnis + Zuweisungen."""
    mgr, config = _load_config_or_abort()
    source = _load_source_or_abort(json_path)

    snapshot, result = _solve(config, source, max_backtracks, seed)
    result.print_rich(snapshot)

    result.save_json(Path(output))
    source.store_assignments(result.assignment_set)
    console.print(f"[green]✓[/green] Ergebnis gespeichert: {output}")

    if validate_solution:
        from analysis.solution_validator import SolutionValidator
        SolutionValidator().validate(result.assignment_set, snapshot).print_rich()


# ─── SHOW ─────────────────────────────────────────────────────────────────────

@click.command("show")
@click.argument("course_id", type=int)
@click.option("--json-path", default=str(DEFAULT_DATA_JSON),
              help="Pfad zur JSON-Datendatei.")
@click.option("--teacher", "as_teacher", is_flag=True, default=False,
              help="ID ist eine Lehrkraft statt eines Kurses.")
def cmd_show(course_id: int, json_path: str, as_teacher: bool):
    """Zeigt das Wochenraster eines Kurses (oder einer Lehrkraft)."""
    from data.source import load_snapshot
    from export.tui_renderer import render_course_rows, render_teacher_rows

    mgr, config = _load_config_or_abort()
    source = _load_source_or_abort(json_path)
    snapshot = load_snapshot(source, config.time_grid)
    try:
        assignment_set = source.load_assignments()
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]\nVerwenden Sie zuerst [bold]wochenplan solve[/bold].")
        sys.exit(1)

    if as_teacher:
        rows = render_teacher_rows(course_id, assignment_set, snapshot)
        entity = snapshot.teacher(course_id)
    else:
        rows = render_course_rows(course_id, assignment_set, snapshot)
        entity = snapshot.course(course_id)
    if entity is None:
        console.print(f"[red]Unbekannte ID: {course_id}[/red]")
        sys.exit(1)

    tg = snapshot.time_grid
    table = Table(title=entity.name, box=box.ROUNDED, show_lines=True)
    table.add_column("Block", justify="right")
    table.add_column("Zeit")
    for name in tg.day_names[:tg.days_per_week]:
        table.add_column(name)
    for row in rows:
        table.add_row(*row)
    console.print(table)


# ─── SCHEDULE ─────────────────────────────────────────────────────────────────

@click.command("schedule")
@click.argument("course_id", type=int)
@click.option("--start", default=None, help="Startdatum YYYY-MM-DD (Default: heute).")
@click.option("--end", default=None, help="Enddatum YYYY-MM-DD (Default: Start + 6 Tage).")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON),
              help="Pfad zur JSON-Datendatei.")
def cmd_schedule(course_id: int, start: Optional[str], end: Optional[str], json_path: str):
    """Listet die datierten Termine eines Kurses (Feiertage entfallen)."""
    from data.source import load_snapshot
    from solver.engine import TimetableEngine
    from solver.projection import DateRange

    mgr, config = _load_config_or_abort()
    source = _load_source_or_abort(json_path)
    snapshot = load_snapshot(source, config.time_grid)

    start_date = _parse_date(start, datetime.date.today())
    end_date = _parse_date(end, start_date + datetime.timedelta(days=6))
    try:
        date_range = DateRange(start=start_date, end=end_date)
    except ValidationError as e:
        raise click.BadParameter(str(e))

    try:
        assignment_set = source.load_assignments()
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]\nVerwenden Sie zuerst [bold]wochenplan solve[/bold].")
        sys.exit(1)

    holidays = source.list_holidays(date_range)
    occurrences = TimetableEngine(config).project_schedule(
        assignment_set, snapshot, course_id, date_range, holidays
    )

    course = snapshot.course(course_id)
    table = Table(
        title=f"{course.name if course else course_id}: {start_date} – {end_date}",
        box=box.ROUNDED,
    )
    table.add_column("Datum")
    table.add_column("Block", justify="right")
    table.add_column("Fach")
    table.add_column("Lehrkraft")
    for occ in occurrences:
        table.add_row(occ.date.isoformat(), str(occ.slot), occ.subject_name, occ.teacher_name)
    console.print(table)
    for h in holidays:
        console.print(f"[dim]Feiertag {h.date.isoformat()}: {h.description}[/dim]")


# ─── EXPORT ───────────────────────────────────────────────────────────────────

@click.command("export")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON),
              help="Pfad zur JSON-Datendatei.")
@click.option("--result", "result_path", default=str(DEFAULT_RESULT_JSON),
              help="Pfad zum Solve-Ergebnis.")
@click.option("--output", "-o", default=str(DEFAULT_EXCEL), help="Ausgabepfad (.xlsx).")
@click.option("--start", default=None, help="Termine ab YYYY-MM-DD (optional).")
@click.option("--end", default=None, help="Termine bis YYYY-MM-DD (Default: Start + 27 Tage).")
def cmd_export(json_path: str, result_path: str, output: str,
               start: Optional[str], end: Optional[str]):
    """Exportiert den Wochenplan als Excel."""
    from data.source import load_snapshot
    from export.excel_export import ExcelExporter
    from solver.projection import DateRange
    from solver.reporting import SolveResult

    mgr, config = _load_config_or_abort()
    source = _load_source_or_abort(json_path)
    snapshot = load_snapshot(source, config.time_grid)
    try:
        result = SolveResult.load_json(Path(result_path))
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]\nVerwenden Sie zuerst [bold]wochenplan solve[/bold].")
        sys.exit(1)

    date_range = None
    holidays = []
    if start is not None:
        start_date = _parse_date(start, datetime.date.today())
        date_range = DateRange(
            start=start_date,
            end=_parse_date(end, start_date + datetime.timedelta(days=27)),
        )
        holidays = source.list_holidays(date_range)

    out = ExcelExporter(result, snapshot, config).export(Path(output), date_range, holidays)
    console.print(f"[green]✓[/green] Excel gespeichert: {out}")


# ─── RUN ──────────────────────────────────────────────────────────────────────

@click.command("run")
@click.option("--seed", default=42, help="Zufalls-Seed für die Testdaten.")
@click.option("--max-backtracks", default=None, type=int, help="Suchbudget.")
@click.option("--output", "-o", default=str(DEFAULT_EXCEL), help="Ausgabepfad (.xlsx).")
def cmd_run(seed: int, max_backtracks: Optional[int], output: str):
    """Führt generate → solve → export aus."""
    from data.fake_data import FakeDataGenerator
    from data.source import JsonDataSource
    from export.excel_export import ExcelExporter

    console.print("[bold]Pipeline: generate → solve → export[/bold]")
    mgr, config = _load_config_or_abort()

    source = FakeDataGenerator(config, seed=seed).generate_source()
    JsonDataSource.write(source, DEFAULT_DATA_JSON)
    source = _load_source_or_abort(str(DEFAULT_DATA_JSON))

    snapshot, result = _solve(config, source, max_backtracks, None)
    result.print_rich(snapshot)
    result.save_json(DEFAULT_RESULT_JSON)
    source.store_assignments(result.assignment_set)

    out = ExcelExporter(result, snapshot, config).export(Path(output))
    console.print(f"[green]✓[/green] Excel gespeichert: {out}")


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug-Ausgaben.")
def cli(verbose: bool):
    """Wochenplan-Engine: Kurse × Fächer × Lehrkräfte auf das Wochenraster."""
    _setup_logging(verbose)


def main():
    """Einstiegspunkt."""
    cli()


# Befehle registrieren
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_validate)
cli.add_command(cmd_solve)
cli.add_command(cmd_show)
cli.add_command(cmd_schedule)
cli.add_command(cmd_export)
cli.add_command(cmd_run)


if __name__ == "__main__":
    main()
