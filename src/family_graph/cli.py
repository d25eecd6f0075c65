"""CLI interface for the family graph."""

import json
import os
from dataclasses import replace
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import Settings, load_settings
from .graph.eligibility import eligible_children, eligible_parents
from .graph.integrity import audit
from .graph.layout import compute_layout
from .graph.store import GraphStore
from .logging import configure_logging, get_logger
from .models.labels import display_name
from .models.person import LifeEvent, Person
from .persistence.repository import JsonFileSnapshotRepository
from .persistence.sharing import export_token, export_url, sanitize_for_export

app = typer.Typer(
    name="family-graph",
    help="Multi-generational family relationship graph",
    add_completion=False,
)
console = Console()
logger = get_logger(__name__)

_state: dict[str, Settings] = {}


class Relation(str, Enum):
    parents = "parents"
    children = "children"


@app.callback()
def main(
    storage: Path = typer.Option(None, "--storage", "-s", help="Directory holding the saved snapshot"),
):
    """Load settings and configure logging for every command."""
    settings = load_settings()
    if storage is not None:
        settings = replace(settings, storage_dir=storage)
    configure_logging(settings.log_level)
    logger.debug("cli.settings_loaded", storage_dir=str(settings.storage_dir))
    _state["settings"] = settings


def get_settings() -> Settings:
    return _state.get("settings") or load_settings()


def open_store() -> GraphStore:
    """Store backed by the JSON file repository in the storage directory."""
    return GraphStore(repository=JsonFileSnapshotRepository(get_settings().storage_dir))


def resolve(store: GraphStore, ref: str) -> Person:
    """Look up a person by id; ``root`` names the current root."""
    person_id = store.root_id if ref == "root" else ref
    person = store.get(person_id) if person_id else None
    if person is None:
        console.print(f"[red]Error: No person with id {ref}[/red]")
        raise typer.Exit(1)
    return person


def _name_patch(given: str | None, family: str | None) -> dict:
    patch = {}
    if given is not None:
        patch["given_name"] = given.strip() or None
    if family is not None:
        patch["family_name"] = family.strip() or None
    return patch


def _people_table(title: str, people, root_id: str | None = None) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name")
    table.add_column("Gen", justify="right")
    table.add_column("Born")
    table.add_column("Parents", justify="right")
    table.add_column("Partners", justify="right")

    for person in people:
        marker = " *" if person.id == root_id else ""
        table.add_row(
            person.id,
            display_name(person) + marker,
            str(person.generation),
            str(person.birth.date) if person.birth and person.birth.date else "",
            str(len(person.parent_ids or ())),
            str(len(person.partner_ids())),
        )
    return table


@app.command()
def show():
    """List everyone in the graph (root marked with *)."""
    store = open_store()
    console.print(_people_table("Family Graph", store.people, store.root_id))
    console.print(f"[dim]{len(store.people)} people[/dim]")


@app.command("add-parent")
def add_parent(
    child_id: str = typer.Argument(..., help="Child id (or 'root')"),
    given: str = typer.Option(None, "--given", "-g", help="Given name"),
    family: str = typer.Option(None, "--family", "-f", help="Family name"),
):
    """Add a new parent one generation above a person."""
    store = open_store()
    child = resolve(store, child_id)
    result = store.add_parent_of(child.id, _name_patch(given, family))
    console.print(f"[green]Added parent {result.person.id}[/green]")


@app.command("add-child")
def add_child(
    parent_id: str = typer.Argument(..., help="Parent id (or 'root')"),
    given: str = typer.Option(None, "--given", "-g", help="Given name"),
    family: str = typer.Option(None, "--family", "-f", help="Family name"),
):
    """Add a new child one generation below a person."""
    store = open_store()
    parent = resolve(store, parent_id)
    result = store.add_child_of(parent.id, _name_patch(given, family))
    console.print(f"[green]Added child {result.person.id}[/green]")


@app.command()
def rename(
    person_id: str = typer.Argument(..., help="Person id (or 'root')"),
    given: str = typer.Option(None, "--given", "-g", help="Given name"),
    family: str = typer.Option(None, "--family", "-f", help="Family name"),
):
    """Change a person's names."""
    store = open_store()
    person = resolve(store, person_id)
    patch = _name_patch(given, family)
    if not patch:
        console.print("[yellow]Nothing to change[/yellow]")
        return
    updated = store.update(person.id, patch)
    console.print(f"[green]Renamed {person.id} to {display_name(updated)}[/green]")


def _add_partner_event(kind: str, person_id: str, partner_id: str, year: str | None, country: str | None) -> None:
    store = open_store()
    person = resolve(store, person_id)
    partner = resolve(store, partner_id)
    if partner.id == person.id:
        console.print("[red]Error: A person cannot partner with themselves[/red]")
        raise typer.Exit(1)

    try:
        event = LifeEvent.build(year=year, country=country, partner_id=partner.id)
    except ValueError as e:
        console.print(f"[red]Error: Invalid event: {e}[/red]")
        raise typer.Exit(1)

    store.update(person.id, {kind: (*getattr(person, kind), event)})
    console.print(f"[green]Recorded {kind[:-1]} of {display_name(person)} and {display_name(partner)}[/green]")


@app.command()
def marry(
    person_id: str = typer.Argument(..., help="Person id (or 'root')"),
    partner_id: str = typer.Argument(..., help="Partner id"),
    year: str = typer.Option(None, "--year", "-y", help="Year of marriage"),
    country: str = typer.Option(None, "--country", "-c", help="Country of marriage"),
):
    """Record a marriage (mirrored onto the partner)."""
    _add_partner_event("marriages", person_id, partner_id, year, country)


@app.command()
def divorce(
    person_id: str = typer.Argument(..., help="Person id (or 'root')"),
    partner_id: str = typer.Argument(..., help="Partner id"),
    year: str = typer.Option(None, "--year", "-y", help="Year of divorce"),
    country: str = typer.Option(None, "--country", "-c", help="Country of divorce"),
):
    """Record a divorce (mirrored onto the partner)."""
    _add_partner_event("divorces", person_id, partner_id, year, country)


@app.command()
def delete(
    person_id: str = typer.Argument(..., help="Person id"),
    yes: bool = typer.Option(False, "--yes", help="Skip confirmation"),
):
    """Delete a person and every reference to them."""
    store = open_store()
    person = resolve(store, person_id)
    if not yes:
        typer.confirm(f"Delete {display_name(person)}?", abort=True)
    store.delete(person.id)
    console.print(f"[green]Deleted {person.id}[/green]")


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", help="Skip confirmation"),
):
    """Start over with a single root person."""
    if not yes:
        typer.confirm("Remove everyone from the graph?", abort=True)
    root = open_store().clear()
    console.print(f"[green]Cleared; new root {root.id}[/green]")


@app.command()
def eligible(
    person_id: str = typer.Argument(..., help="Person id (or 'root')"),
    relation: Relation = typer.Option(Relation.parents, "--relation", "-r", help="parents or children"),
):
    """List who may become a person's parent or child."""
    store = open_store()
    person = resolve(store, person_id)
    if relation == Relation.parents:
        candidates = eligible_parents(person, store.people)
    else:
        candidates = eligible_children(person, store.people)

    if not candidates:
        console.print(f"[yellow]No eligible {relation.value} for {display_name(person)}[/yellow]")
        return
    console.print(_people_table(f"Eligible {relation.value} of {display_name(person)}", candidates))


@app.command()
def layout(
    as_json: bool = typer.Option(False, "--json", help="Print the layout as JSON"),
):
    """Compute the generational diagram layout."""
    store = open_store()
    result = compute_layout(store.people, get_settings().layout_config())

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    table = Table(title=f"Layout {result.width:g} x {result.height:g}")
    table.add_column("Name")
    table.add_column("Gen", justify="right")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    for node in result.nodes:
        table.add_row(node.label, str(node.generation), f"{node.x:g}", f"{node.y:g}")
    console.print(table)
    console.print(f"[dim]{len(result.edges)} edges[/dim]")


@app.command()
def check():
    """Audit the graph for integrity problems."""
    store = open_store()
    issues = audit(store.people)
    if not issues:
        console.print("[green]No integrity issues[/green]")
        return

    table = Table(title="Integrity Issues")
    table.add_column("Kind")
    table.add_column("Message")
    table.add_column("People", style="dim")
    for issue in issues:
        style = "red" if issue.is_structural else "yellow"
        table.add_row(f"[{style}]{issue.kind.value}[/{style}]", issue.message, ", ".join(issue.person_ids))
    console.print(table)

    if any(issue.is_structural for issue in issues):
        raise typer.Exit(1)


@app.command()
def export(
    url: str = typer.Option(None, "--url", "-u", help="Base URL to embed the token in"),
    sanitize: bool = typer.Option(False, "--sanitize", help="Replace names with generation labels"),
):
    """Print a shareable token (or link) for the current graph."""
    snapshot = open_store().snapshot()
    if sanitize:
        snapshot = sanitize_for_export(snapshot)
    typer.echo(export_url(snapshot, url) if url else export_token(snapshot))


@app.command("import")
def import_(
    source: str = typer.Argument(..., help="Token, shared link, or path to a snapshot JSON file"),
):
    """Replace the graph with an imported snapshot."""
    store = open_store()

    if source.startswith(("http://", "https://")):
        ok = store.import_url(source)
    elif os.path.isfile(source):
        ok = store.import_json(Path(source).read_text(encoding="utf-8"))
    else:
        ok = store.import_token(source)

    if not ok:
        console.print("[red]Error: Could not import snapshot; nothing was changed[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Imported {len(store.people)} people[/green]")


if __name__ == "__main__":
    app()
