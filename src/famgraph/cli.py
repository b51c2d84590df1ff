"""Operator CLI for the family graph store."""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .errors import FamGraphError

app = typer.Typer(
    name="famgraph",
    help="Family relationship graph engine",
    add_completion=False,
)
console = Console()

_db_option = typer.Option(None, "--db", help="SQLite database path (default: FAMGRAPH_DB_PATH)")


def get_service(db: Path | None = None):
    """Build the service from the environment (.env is honoured)."""
    from dotenv import load_dotenv

    from .config import FamGraphConfig
    from .logging import configure_logging
    from .service import FamilyGraphService

    load_dotenv()
    config = FamGraphConfig.from_env()
    configure_logging(config.log_level)
    return FamilyGraphService(db or config.db_path, config=config)


def _fail(exc: FamGraphError) -> None:
    console.print(f"[red]{exc.code}: {exc}[/red]")
    raise typer.Exit(1)


def _dump(payload) -> None:
    console.print_json(json.dumps(payload, ensure_ascii=False, default=str))


@app.command("init-db")
def init_db(db: Path = _db_option):
    """Create the database schema."""
    svc = get_service(db)
    console.print(f"[green]Database ready at {svc.db.db_path}[/green]")


@app.command("add-profile")
def add_profile(
    first_name: str = typer.Argument(..., help="Given name"),
    last_name: str = typer.Argument(None, help="Surname"),
    birth_date: str = typer.Option(None, "--born", "-b", help="Birth date (YYYY[-MM[-DD]])"),
    gender: str = typer.Option("unknown", "--gender", "-g", help="male, female or unknown"),
    birth_city: str = typer.Option(None, "--city", help="Birth city"),
    db: Path = _db_option,
):
    """Create a profile and print its id."""
    svc = get_service(db)
    try:
        profile = svc.create_profile(
            first_name=first_name,
            last_name=last_name,
            birth_date=birth_date,
            gender=gender,
            birth_city=birth_city,
        )
    except FamGraphError as exc:
        _fail(exc)
    console.print(f"[green]{profile.display_name}[/green] {profile.id}")


@app.command("add-edge")
def add_edge(
    person_a: str = typer.Argument(..., help="First profile id (the parent for parent edges)"),
    person_b: str = typer.Argument(..., help="Second profile id"),
    edge_type: str = typer.Option("parent", "--type", "-t", help="parent, spouse, sibling or discovered_relative"),
    db: Path = _db_option,
):
    """Add a relationship edge."""
    svc = get_service(db)
    try:
        edge = svc.add_relationship(person_a, person_b, edge_type)
    except FamGraphError as exc:
        _fail(exc)
    console.print(f"[green]Added {edge.type.value} edge[/green] {edge.id}")


@app.command()
def ancestors(
    profile_id: str = typer.Argument(..., help="Profile id"),
    max_depth: int = typer.Option(None, "--max-depth", "-d", help="Maximum parent hops"),
    db: Path = _db_option,
):
    """List a profile's ancestors with depth and path."""
    svc = get_service(db)
    try:
        hits = svc.ancestor_paths(profile_id, max_depth)
    except FamGraphError as exc:
        _fail(exc)

    table = Table(title=f"Ancestors of {profile_id}")
    table.add_column("Ancestor", style="cyan")
    table.add_column("Depth", justify="right")
    table.add_column("Path", style="dim")
    for hit in hits:
        table.add_row(hit.ancestor_id, str(hit.depth), " > ".join(hit.path))
    console.print(table)


@app.command()
def matches(
    ego_id: str = typer.Argument(..., help="Profile id to find relatives for"),
    max_depth: int = typer.Option(None, "--max-depth", "-d"),
    limit: int = typer.Option(None, "--limit", "-l"),
    locale: str = typer.Option("en", "--locale", help="Label language (en or ru)"),
    db: Path = _db_option,
):
    """Suggest relatives who share an ancestor."""
    svc = get_service(db)
    try:
        results = svc.find_relative_matches(ego_id, max_depth, limit, locale=locale)
    except FamGraphError as exc:
        _fail(exc)

    if not results:
        console.print("[yellow]No matches found[/yellow]")
        return
    table = Table(title="Relative Matches")
    table.add_column("Candidate", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Relationship")
    table.add_column("Path", style="dim")
    table.add_column("Reasons", style="dim")
    for m in results:
        table.add_row(m.candidate_id, f"{m.score:.4f}", m.relationship_label, m.path_expr, ", ".join(m.reasons))
    console.print(table)


@app.command()
def path(
    person_a: str = typer.Argument(..., help="Starting profile id"),
    person_b: str = typer.Argument(..., help="Target profile id"),
    max_depth: int = typer.Option(None, "--max-depth", "-d", help="Maximum hops (capped at 20)"),
    locale: str = typer.Option("en", "--locale"),
    db: Path = _db_option,
):
    """Show the shortest relationship path between two profiles."""
    svc = get_service(db)
    try:
        result = svc.relationship_path(person_a, person_b, max_depth, locale)
    except FamGraphError as exc:
        _fail(exc)

    if not result.found:
        console.print(f"[yellow]{result.label}[/yellow]")
        return
    table = Table(title=f"{result.label} ({result.degree_of_separation})")
    table.add_column("Person", style="cyan")
    table.add_column("Next hop")
    table.add_column("Direction", style="dim")
    for step in result.steps:
        table.add_row(step.display_name, step.relationship_type or "", step.direction.value if step.direction else "")
    console.print(table)
    console.print(f"[dim]path {result.path_expr or '-'}, category {result.category.value}[/dim]")


@app.command()
def shared(
    person_a: str = typer.Argument(...),
    person_b: str = typer.Argument(...),
    max_depth: int = typer.Option(None, "--max-depth", "-d"),
    db: Path = _db_option,
):
    """List ancestors two profiles have in common, nearest first."""
    svc = get_service(db)
    try:
        found = svc.shared_ancestors(person_a, person_b, max_depth)
    except FamGraphError as exc:
        _fail(exc)

    if not found:
        console.print("[yellow]No shared ancestors[/yellow]")
        return
    table = Table(title="Shared Ancestors")
    table.add_column("Ancestor", style="cyan")
    table.add_column("Depth A", justify="right")
    table.add_column("Depth B", justify="right")
    for s in found:
        table.add_row(s.display_name, str(s.depth_a), str(s.depth_b))
    console.print(table)


@app.command()
def resolve(
    phrase: str = typer.Argument(..., help='Kinship phrase, e.g. "сестра мамы"'),
    ego_id: str = typer.Option(None, "--ego", "-e", help="Resolve against this profile"),
    locale: str = typer.Option("ru", "--locale"),
    db: Path = _db_option,
):
    """Resolve a kinship phrase to path expressions (and people, with --ego)."""
    svc = get_service(db)
    results = svc.resolve_kinship_phrase(ego_id, phrase, locale)
    if not results:
        console.print(f"[yellow]Unknown phrase: {phrase}[/yellow]")
        return
    _dump([r.model_dump(mode="json") for r in results])


@app.command("scan-duplicates")
def scan_duplicates(
    min_confidence: float = typer.Option(None, "--min-confidence", "-m"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report without recording"),
    db: Path = _db_option,
):
    """Scan all active profiles for likely duplicates."""
    svc = get_service(db)
    summary = svc.scan_duplicates(min_confidence, dry_run=dry_run)
    console.print(
        Panel(
            f"Profiles scanned: {summary.profiles_scanned}\n"
            f"Pairs compared: {summary.pairs_compared}\n"
            f"Duplicates found: {summary.duplicates_found}\n"
            f"Recorded: {summary.duplicates_inserted}",
            title="Duplicate Scan",
        )
    )


@app.command()
def duplicates(
    status: str = typer.Option("pending", "--status", "-s", help="pending, merged, rejected, dismissed or all"),
    min_confidence: float = typer.Option(0.0, "--min-confidence", "-m"),
    page: int = typer.Option(1, "--page", "-p"),
    page_size: int = typer.Option(20, "--page-size"),
    db: Path = _db_option,
):
    """List potential duplicates for review."""
    svc = get_service(db)
    try:
        result = svc.list_potential_duplicates(None if status == "all" else status, min_confidence, page, page_size)
    except FamGraphError as exc:
        _fail(exc)

    table = Table(title="Potential Duplicates")
    table.add_column("ID", style="dim")
    table.add_column("Profile A")
    table.add_column("Profile B")
    table.add_column("Score", justify="right")
    table.add_column("Confidence")
    table.add_column("Status")
    for item in result.items:
        d = item.duplicate
        table.add_row(
            d.id,
            item.profile_a.display_name if item.profile_a else d.profile_a,
            item.profile_b.display_name if item.profile_b else d.profile_b,
            f"{d.confidence_score:.0f}",
            d.confidence_level.value,
            d.status.value,
        )
    console.print(table)
    console.print(f"[dim]Page {result.page}, {result.total} total[/dim]")


@app.command()
def merge(
    duplicate_id: str = typer.Argument(...),
    keep_id: str = typer.Argument(..., help="Profile that survives"),
    merge_id: str = typer.Argument(..., help="Profile folded into the kept one"),
    field: list[str] = typer.Option(None, "--field", "-f", help="Field to copy (repeatable; default all)"),
    actor: str = typer.Option("cli", "--actor"),
    db: Path = _db_option,
):
    """Merge two duplicate profiles."""
    svc = get_service(db)
    try:
        result = svc.merge_profiles(duplicate_id, keep_id, merge_id, field or (), actor)
    except FamGraphError as exc:
        _fail(exc)
    _dump(result.model_dump(mode="json"))


@app.command()
def request(
    from_id: str = typer.Argument(...),
    to_id: str = typer.Argument(...),
    shared_ancestor_id: str = typer.Option(None, "--ancestor", "-a"),
    message: str = typer.Option(None, "--message"),
    db: Path = _db_option,
):
    """Send a connection request."""
    svc = get_service(db)
    try:
        req = svc.create_connection_request(from_id, to_id, shared_ancestor_id, message)
    except FamGraphError as exc:
        _fail(exc)
    console.print(f"[green]Request {req.id} is {req.status.value}[/green]")


@app.command()
def respond(
    request_id: str = typer.Argument(...),
    actor_id: str = typer.Argument(..., help="Acting profile id"),
    status: str = typer.Argument(..., help="accepted, declined or cancelled"),
    db: Path = _db_option,
):
    """Accept, decline or cancel a connection request."""
    svc = get_service(db)
    try:
        req = svc.update_connection_request_status(request_id, actor_id, status)
    except FamGraphError as exc:
        _fail(exc)
    console.print(f"[green]Request {req.id} is now {req.status.value}[/green]")


@app.command("rebuild-index")
def rebuild_index(db: Path = _db_option):
    """Recompute the whole ancestor cache."""
    svc = get_service(db)
    rows = svc.rebuild_ancestor_index()
    console.print(f"[green]Ancestor cache rebuilt: {rows} rows[/green]")


if __name__ == "__main__":
    app()
