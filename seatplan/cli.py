"""Command-line interface for seatplan.

Usage
-----
    seatplan --data-dir ./data --library main init --rows 5 --cols 8
    seatplan --library main assign A-1 student-42
    seatplan --library main status A-2 check_in
    seatplan --library main publish
    seatplan --library main scene --published --output scene.geojson
    seatplan validate layout.json
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click

from seatplan.config import Config
from seatplan.errors import SeatPlanError
from seatplan.layout.codec import dumps, load_layout_json
from seatplan.layout.document import LayoutDocument
from seatplan.layout.grid import generate_grid
from seatplan.persistence.json_store import JsonFileAdapter
from seatplan.session import EditSession
from seatplan.validate.reports import build_layout_report
from seatplan.viewer.events import SeatCommand
from seatplan.viewer.scene import save_scene_geojson

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("seatplan.cli")


@contextmanager
def _domain_errors() -> Iterator[None]:
    """Log seat-plan errors and exit 1 instead of printing a traceback."""
    try:
        yield
    except SeatPlanError as exc:
        logger.error("%s: %s", type(exc).__name__, exc.message)
        raise SystemExit(1)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _open(ctx: click.Context, create: bool = False) -> EditSession:
    obj = ctx.obj
    return EditSession.open(obj["library_id"], obj["adapter"], obj["config"], create=create)


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="YAML configuration file")
@click.option("--data-dir", "-d", default=None, help="Directory holding layout files")
@click.option("--library", "-l", "library_id", default=None, help="Library id")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Optional[str],
    data_dir: Optional[str],
    library_id: Optional[str],
    verbose: bool,
) -> None:
    """Edit, publish and inspect library seat layouts."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    cfg = Config.from_yaml(config_path) if config_path else Config.default()
    if data_dir:
        cfg.storage.data_dir = Path(data_dir)
    if library_id:
        cfg.library_id = library_id

    ctx.obj = {
        "config": cfg,
        "library_id": cfg.library_id or "default",
        "adapter": JsonFileAdapter(cfg.storage.data_dir, indent=cfg.storage.indent),
    }


# ---- Layout ------------------------------------------------------------- #


@main.command()
@click.option("--name", default=None, help="Layout name")
@click.option("--rows", default=0, show_default=True, help="Generate a seat grid with this many rows")
@click.option("--cols", default=0, show_default=True, help="Columns of the generated grid")
@click.option("--force", is_flag=True, help="Overwrite an existing layout")
@click.pass_context
def init(ctx: click.Context, name: Optional[str], rows: int, cols: int, force: bool) -> None:
    """Create a new layout with default category and section."""
    cfg: Config = ctx.obj["config"]
    adapter: JsonFileAdapter = ctx.obj["adapter"]
    library_id = ctx.obj["library_id"]
    revision = adapter.revision(library_id)
    if revision and not force:
        logger.error("Library %s already has a layout (use --force)", library_id)
        raise SystemExit(1)

    with _domain_errors():
        doc = LayoutDocument.create(name, defaults=cfg.layout)
        session = EditSession(library_id, adapter, doc, revision, cfg)
        if rows and cols:
            generate_grid(doc, rows, cols, spacing=cfg.layout.seat_spacing)
        session.save()
    logger.info("Initialised layout for %s with %d seats", library_id, len(doc.seats))


@main.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_layout(ctx: click.Context, path: str) -> None:
    """Replace the stored draft with a layout JSON file."""
    adapter: JsonFileAdapter = ctx.obj["adapter"]
    library_id = ctx.obj["library_id"]
    with _domain_errors():
        doc = load_layout_json(Path(path))
        revision = adapter.save_layout(library_id, doc)
    logger.info("Imported %s as revision %d", path, revision)


@main.command("export")
@click.option("--output", "-o", default=None, help="Write to a file instead of stdout")
@click.pass_context
def export_layout(ctx: click.Context, output: Optional[str]) -> None:
    """Print the stored draft as JSON."""
    with _domain_errors():
        session = _open(ctx)
        text = dumps(session.document)
    if output:
        Path(output).write_text(text, encoding="utf-8")
    else:
        click.echo(text)


@main.command()
@click.argument("path", required=False, type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate(ctx: click.Context, path: Optional[str]) -> None:
    """Check a layout file (or the stored draft) and print a report."""
    with _domain_errors():
        doc = load_layout_json(Path(path)) if path else _open(ctx).document
    report = build_layout_report(doc)
    _echo_json(report)
    if not report["ok"]:
        for problem in report["problems"]:
            logger.error("Integrity error: %s", problem)
        raise SystemExit(1)


@main.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Print occupancy statistics."""
    adapter: JsonFileAdapter = ctx.obj["adapter"]
    with _domain_errors():
        _echo_json(adapter.get_occupancy_stats(ctx.obj["library_id"]).to_dict())


@main.command()
@click.option("--rows", required=True, type=click.IntRange(min=1))
@click.option("--cols", required=True, type=click.IntRange(min=1))
@click.option("--section", "section_id", default=None, help="Section id (default: first)")
@click.option("--category", "category_id", default=None, help="Category id (default: first)")
@click.pass_context
def grid(ctx: click.Context, rows: int, cols: int, section_id: Optional[str], category_id: Optional[str]) -> None:
    """Add a rows x cols grid of seats."""
    with _domain_errors():
        session = _open(ctx)
        seats = generate_grid(
            session.document, rows, cols, section_id, category_id,
            spacing=session.config.layout.seat_spacing,
        )
        session.save()
    click.echo(f"{len(seats)} seats")


@main.command("add-section")
@click.argument("name")
@click.option("--free-seating", is_flag=True, help="Walk-in only; no fixed seats")
@click.pass_context
def add_section(ctx: click.Context, name: str, free_seating: bool) -> None:
    with _domain_errors():
        session = _open(ctx)
        sec = session.document.add_section(name, free_seating=free_seating)
        session.save()
    click.echo(sec.id)


@main.command("add-category")
@click.argument("name")
@click.option("--color", default="#4CAF50", show_default=True)
@click.option("--text-color", default="#FFFFFF", show_default=True)
@click.pass_context
def add_category(ctx: click.Context, name: str, color: str, text_color: str) -> None:
    with _domain_errors():
        session = _open(ctx)
        cat = session.document.add_category(name, color=color, text_color=text_color)
        session.save()
    click.echo(cat.id)


# ---- Seats -------------------------------------------------------------- #


@main.command()
@click.argument("seat_id")
@click.argument("event")
@click.pass_context
def status(ctx: click.Context, seat_id: str, event: str) -> None:
    """Apply a status EVENT (reserve, check_in, check_out, ...) to a seat."""
    try:
        command = SeatCommand.status(seat_id, event)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="EVENT")
    with _domain_errors():
        session = _open(ctx)
        snap = session.handle(command)
        session.save()
    click.echo(snap.get_seat(seat_id).status.value)


@main.command()
@click.argument("seat_id")
@click.argument("person_id")
@click.pass_context
def assign(ctx: click.Context, seat_id: str, person_id: str) -> None:
    """Fix a seat to a person."""
    with _domain_errors():
        session = _open(ctx)
        session.handle(SeatCommand.assign(seat_id, person_id))
        session.save()
    click.echo(f"{seat_id} → {person_id}")


@main.command()
@click.argument("seat_id")
@click.argument("person_id")
@click.pass_context
def unassign(ctx: click.Context, seat_id: str, person_id: str) -> None:
    """Release a fixed seat."""
    with _domain_errors():
        session = _open(ctx)
        session.handle(SeatCommand.unassign(seat_id, person_id))
        session.save()
    click.echo(f"{seat_id} released")


@main.command()
@click.argument("person_id")
@click.pass_context
def whois(ctx: click.Context, person_id: str) -> None:
    """Print the seat fixed to a person."""
    with _domain_errors():
        seat = _open(ctx).manager.seat_for_person(person_id)
    if seat is None:
        logger.error("Person %s has no fixed seat", person_id)
        raise SystemExit(1)
    click.echo(seat.id)


@main.command()
@click.pass_context
def audit(ctx: click.Context) -> None:
    """Print the assignment audit log."""
    adapter: JsonFileAdapter = ctx.obj["adapter"]
    _echo_json([e.to_dict() for e in adapter.audit_log(ctx.obj["library_id"])])


# ---- Publishing / viewing ----------------------------------------------- #


@main.command()
@click.pass_context
def publish(ctx: click.Context) -> None:
    """Validate and publish the draft."""
    with _domain_errors():
        snap = _open(ctx).publish()
    click.echo(snap.published_at.isoformat())


@main.command()
@click.pass_context
def unpublish(ctx: click.Context) -> None:
    """Return the layout to draft; viewers keep the last published version."""
    with _domain_errors():
        _open(ctx).unpublish()


@main.command()
@click.option("--output", "-o", required=True, help="GeoJSON output path")
@click.option("--published", is_flag=True, help="Render what end users see")
@click.option("--selected", default=None, help="Highlight this seat")
@click.pass_context
def scene(ctx: click.Context, output: str, published: bool, selected: Optional[str]) -> None:
    """Export the rendered scene as GeoJSON."""
    with _domain_errors():
        session = _open(ctx)
        built = session.viewer_scene(selected) if published else session.editor_scene(selected)
    save_scene_geojson(built, Path(output))
    logger.info("Scene with %d items written to %s", len(built.items), output)


if __name__ == "__main__":
    main()
