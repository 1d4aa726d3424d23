"""Command line interface for HabitLog."""

from __future__ import annotations

import json
import time
from datetime import date, datetime
from pathlib import Path
from typing import NoReturn, Optional

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .errors import HabitLogError, HabitValidationError, ImportFormatError
from .logging_config import setup_logging
from .models.habit import Frequency
from .services import transfer

DATE_TYPE = click.DateTime(formats=["%Y-%m-%d"])
FREQUENCY_TYPE = click.Choice([f.value for f in Frequency])

pass_app = click.make_pass_decorator(AppContext)


def _day(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value is not None else None


def _fail(errors: list[str]) -> NoReturn:
    for message in errors:
        click.echo(f"  - {message}", err=True)
    raise click.exceptions.Exit(1)


def _require_habit(app: AppContext, habit_id: str):
    habit = app.registry.get(habit_id)
    if habit is None:
        raise click.ClickException(f"No habit with id {habit_id}")
    return habit


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Track habits, completions and streaks."""

    if ctx.obj is None:
        config = BaseConfig()
        setup_logging(config)
        app = create_app_context(config)
        ctx.obj = app
        ctx.call_on_close(app.shutdown)


@cli.command("add")
@click.argument("name")
@click.option("--frequency", type=FREQUENCY_TYPE, default=Frequency.DAILY.value, show_default=True)
@click.option("--description", default="")
@click.option("--tag", "tags", multiple=True, help="Repeat for several tags")
@click.option("--reminder", "reminder_time", default=None, help="Daily reminder time, HH:MM")
@click.option("--message", "reminder_message", default=None, help="Reminder text")
@pass_app
def add_habit(app: AppContext, name, frequency, description, tags, reminder_time, reminder_message):
    """Create a habit."""

    try:
        habit = app.registry.add(
            name=name,
            frequency=frequency,
            description=description,
            tags=list(tags),
            reminder_time=reminder_time,
            reminder_message=reminder_message,
        )
    except HabitValidationError as exc:
        click.echo("Habit not saved:", err=True)
        _fail(exc.errors)
    if habit is None:
        raise click.ClickException("Habit could not be stored; see the log for details")
    click.echo(f"Added {habit.name} ({habit.id})")


@cli.command("edit")
@click.argument("habit_id")
@click.option("--name", default=None)
@click.option("--frequency", type=FREQUENCY_TYPE, default=None)
@click.option("--description", default=None)
@click.option("--tag", "tags", multiple=True)
@click.option("--reminder", "reminder_time", default=None)
@click.option("--message", "reminder_message", default=None)
@click.option("--clear-reminder", is_flag=True, default=False)
@pass_app
def edit_habit(app: AppContext, habit_id, clear_reminder, tags, **options):
    """Change fields of a habit; only the given options are touched."""

    changes = {key: value for key, value in options.items() if value is not None}
    if tags:
        changes["tags"] = list(tags)
    if clear_reminder:
        changes["reminder_time"] = None
        changes["reminder_message"] = None
    if not changes:
        raise click.UsageError("Nothing to change")

    try:
        habit = app.registry.update(habit_id, **changes)
    except HabitValidationError as exc:
        click.echo("Habit not saved:", err=True)
        _fail(exc.errors)
    if habit is None:
        raise click.ClickException(f"No habit with id {habit_id}")
    click.echo(f"Updated {habit.name}")


@cli.command("delete")
@click.argument("habit_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@pass_app
def delete_habit(app: AppContext, habit_id, yes):
    """Delete a habit and its completion history."""

    habit = _require_habit(app, habit_id)
    if not yes:
        click.confirm(f"Delete {habit.name} and all of its history?", abort=True)
    app.registry.delete(habit_id)
    click.echo(f"Deleted {habit.name}")


@cli.command("list")
@pass_app
def list_habits(app: AppContext):
    """Show habits with today's status and current streak."""

    habits = app.registry.list_all()
    if not habits:
        click.echo("No habits yet. Add one with `habitlog add NAME`.")
        return
    for stats in app.stats.all_stats():
        mark = "x" if stats.completed_today else " "
        habit = stats.habit
        click.echo(
            f"[{mark}] {habit.id}  {habit.name}  ({habit.frequency.value})  "
            f"streak {stats.current_streak}"
        )


@cli.command("done")
@click.argument("habit_id")
@click.option("--date", "day", type=DATE_TYPE, default=None, help="YYYY-MM-DD, defaults to today")
@pass_app
def mark_done(app: AppContext, habit_id, day):
    """Mark a habit complete."""

    habit = _require_habit(app, habit_id)
    app.completion_log.mark_complete(habit_id, _day(day))
    streak = app.stats.current_streak(habit_id)
    click.echo(f"{habit.name}: done. Current streak {streak}")


@cli.command("undo")
@click.argument("habit_id")
@click.option("--date", "day", type=DATE_TYPE, default=None)
@pass_app
def mark_undone(app: AppContext, habit_id, day):
    """Remove a completion."""

    habit = _require_habit(app, habit_id)
    app.completion_log.mark_incomplete(habit_id, _day(day))
    click.echo(f"{habit.name}: marked incomplete")


@cli.command("stats")
@click.argument("habit_id")
@pass_app
def habit_stats(app: AppContext, habit_id):
    """Streaks and completion rates for one habit."""

    stats = app.stats.habit_stats(habit_id)
    if stats is None:
        raise click.ClickException(f"No habit with id {habit_id}")
    click.echo(stats.habit.name)
    click.echo(f"  current streak:   {stats.current_streak}")
    click.echo(f"  longest streak:   {stats.longest_streak}")
    click.echo(f"  last 7 days:      {stats.completion_rate_7}%")
    click.echo(f"  last 30 days:     {stats.completion_rate_30}%")
    click.echo(f"  completions/year: {stats.total_completions}")


@cli.command("overview")
@pass_app
def overview(app: AppContext):
    """Totals across all habits plus the last seven days."""

    overall = app.stats.overall_stats()
    click.echo(f"Habits:          {overall.total_habits}")
    click.echo(f"Today:           {overall.completed_today}/{overall.total_habits} ({overall.today_progress}%)")
    click.echo(f"Best streak:     {overall.best_streak}")
    click.echo(f"Overall success: {overall.overall_success}%")
    click.echo("Last 7 days:")
    for point in app.stats.weekly_progress():
        click.echo(f"  {point.weekday} {point.day.isoformat()}  {point.completed}/{point.total}  {point.percentage}%")
    attention = app.stats.habits_needing_attention()
    if attention:
        click.echo("Needs attention: " + ", ".join(habit.name for habit in attention))


@cli.command("history")
@click.argument("habit_id")
@click.option("--days", default=30, show_default=True, type=click.IntRange(min=1))
@pass_app
def history(app: AppContext, habit_id, days):
    """Day-by-day completion for the last N days."""

    habit = _require_habit(app, habit_id)
    click.echo(habit.name)
    for status in app.completion_log.window(habit_id, days):
        click.echo(f"  {status.day.isoformat()}  {'done' if status.completed else '-'}")


@cli.command("info")
@pass_app
def info(app: AppContext):
    """Storage, habit and notification summary."""

    summary = app.app_stats()
    storage = summary["storage"]
    click.echo(f"HabitLog {summary['app_version']}")
    click.echo(f"Habits:        {storage['total_habits']}")
    click.echo(f"Completions:   {storage['total_completions']}")
    click.echo(f"Storage size:  {storage['storage_size']} bytes")
    click.echo(f"Notifications: {'on' if summary['notifications']['enabled'] else 'off'}")
    click.echo(f"Reminders:     {summary['notifications']['reminders']}")


@cli.command("notifications")
@click.option("--enable/--disable", default=True)
@pass_app
def notifications(app: AppContext, enable):
    """Turn notification delivery on or off."""

    app.settings_repo.set("notificationsEnabled", enable)
    click.echo(f"Notifications {'enabled' if enable else 'disabled'}")


@cli.command("export")
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--habit", "habit_id", default=None, help="Export one habit with its stats")
@pass_app
def export_cmd(app: AppContext, path: Optional[Path], habit_id: Optional[str]):
    """Write every habit, completion and setting to a JSON file."""

    if habit_id is not None:
        document = transfer.habit_document(app.stats, habit_id)
        if document is None:
            raise click.ClickException(f"No habit with id {habit_id}")
        target = path or Path(f"habit-{habit_id}.json")
        target.write_text(json.dumps(document, indent=2), encoding="utf-8")
    else:
        target = path or Path(transfer.backup_filename(app.today()))
        transfer.write_export(app.session_factory, target)
    click.echo(f"Export written: {target}")


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_app
def import_cmd(app: AppContext, path: Path):
    """Replace all data with the contents of an export file."""

    try:
        summary = transfer.import_data(app.session_factory, transfer.read_import_file(path))
    except ImportFormatError as exc:
        click.echo("Import rejected, nothing was changed:", err=True)
        _fail(exc.errors)
    except HabitLogError as exc:
        raise click.ClickException(str(exc)) from exc
    if app.scheduler is not None and app.scheduler.running:
        app.scheduler.load_reminders()
    click.echo(f"Imported {summary.habits} habits and {summary.completions} completions")


@cli.command("clear")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@pass_app
def clear_cmd(app: AppContext, yes):
    """Delete all habits, completions and settings."""

    if not yes:
        click.confirm("Clear all data? This cannot be undone.", abort=True)
    try:
        transfer.clear_all(app.session_factory)
    except HabitLogError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo("All data cleared")


@cli.command("run")
@pass_app
def run_scheduler(app: AppContext):
    """Run reminders and periodic checks until interrupted."""

    app.scheduler.start()
    click.echo("Scheduler running; press Ctrl+C to stop")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("Stopping")
    finally:
        app.scheduler.stop()


def main() -> None:  # pragma: no cover - console entry point
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
