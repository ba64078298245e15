"""
Krishna108 - Main CLI Application

Command-line interface for the daily devotional pipeline. Intended to be
run by a scheduler (CRON_SCHEDULE) as well as by hand.
"""
import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from config import get_config
from core.errors import DevotionalError, PipelineStepError
from data.scripture_index import DEFAULT_INDEX
from db.postgres import PostgresClient, close_db_client, get_db_client
from domain.verse_selector import VerseSelector
from observability.logging import get_logger, shutdown_logging
from observability.tracing import shutdown_tracing

# Initialize app
app = typer.Typer(
    name="krishna108",
    help="Krishna108 - Daily devotional post pipeline",
    add_completion=False
)

console = Console()
logger = get_logger("krishna108.cli")


@app.callback()
def setup(ctx: typer.Context) -> None:
    """Configure logging and tracing before any command runs."""
    config = get_config()
    config.setup_logging()
    config.setup_tracing()
    ctx.call_on_close(_shutdown)


def _shutdown() -> None:
    shutdown_tracing()
    shutdown_logging()


@app.command("next-verse")
def next_verse(
    as_json: bool = typer.Option(False, "--json", help="Print the reference as JSON"),
):
    """Show the verse the next run would publish."""
    try:
        reference = asyncio.run(_select_next())
    except DevotionalError as e:
        _print_error(e)
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(reference.to_dict()))
    else:
        console.print(f"[bold green]Next verse:[/bold green] {reference.label}")


@app.command()
def generate(
    dry_run: bool = typer.Option(False, "--dry-run", help="Generate and validate without saving"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Run the daily post pipeline once."""
    config = get_config()
    try:
        config.require_llm()
        result = asyncio.run(_run_pipeline(dry_run))
    except DevotionalError as e:
        _print_error(e)
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(result.to_dict()))
        return

    table = Table(title=result.message)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Verse", result.reference.label)
    table.add_row("Slug", result.slug)
    table.add_row("Post ID", result.post_id or "-")
    if result.content is not None:
        table.add_row("Title", result.content.title)
        table.add_row("Word count", str(result.content.word_count))
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")
    console.print(table)


@app.command()
def status(
    db: bool = typer.Option(False, "--db", help="Also query post counts from the database"),
):
    """Show canon statistics and configuration."""
    config = get_config()

    console.print(Panel.fit(
        f"[bold blue]Krishna108 - {config.site.name}[/bold blue]",
        border_style="blue"
    ))

    canon = Table(title="Canon")
    canon.add_column("Scripture", style="cyan")
    canon.add_column("Chapters", justify="right")
    canon.add_column("Verses", justify="right")
    for source, counts in DEFAULT_INDEX.summary().items():
        canon.add_row(source, str(counts["chapters"]), str(counts["verses"]))
    canon.add_row("[bold]Total[/bold]", "", f"[bold]{DEFAULT_INDEX.total_verses()}[/bold]")
    console.print(canon)

    settings = Table(title="Configuration")
    settings.add_column("Setting", style="cyan")
    settings.add_column("Value")
    settings.add_row("Environment", config.env.value)
    settings.add_row("Database", config.database.safe_url)
    settings.add_row("Model", config.llm.model)
    settings.add_row("Recency window", f"{config.selection.recency_window_days} days")
    settings.add_row("Schedule", config.site.cron_schedule)
    console.print(settings)

    missing = config.validate()
    if missing:
        console.print(f"[yellow]Missing settings:[/yellow] {', '.join(missing)}")

    if db:
        try:
            counts = asyncio.run(_post_counts())
        except DevotionalError as e:
            _print_error(e)
            raise typer.Exit(1)

        posts = Table(title="Published posts")
        posts.add_column("Scripture", style="cyan")
        posts.add_column("Posts", justify="right")
        for source, count in counts.items():
            posts.add_row(source, str(count))
        console.print(posts)


@app.command()
def posts(
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Number of posts to list"),
):
    """List the most recently published posts."""
    try:
        recent = asyncio.run(_recent_posts(limit))
    except DevotionalError as e:
        _print_error(e)
        raise typer.Exit(1)

    if not recent:
        console.print("[yellow]No posts published yet[/yellow]")
        return

    table = Table(title="Recent posts")
    table.add_column("Published", style="dim")
    table.add_column("Verse", style="cyan")
    table.add_column("Slug")
    for post in recent:
        table.add_row(
            post.created_at.strftime("%Y-%m-%d"),
            f"{post.scripture_source} {post.verse_reference}",
            post.slug,
        )
    console.print(table)


@app.command("init-db")
def init_db():
    """Create the posts table (use Alembic migrations in production)."""
    try:
        asyncio.run(_create_tables())
    except DevotionalError as e:
        _print_error(e)
        raise typer.Exit(1)
    console.print("[green]Database tables created[/green]")


async def _select_next():
    client = await get_db_client()
    try:
        selection = get_config().selection
        selector = VerseSelector(
            history=client,
            window_days=selection.recency_window_days,
            max_attempts=selection.max_attempts,
        )
        return await selector.select_next()
    finally:
        await close_db_client()


async def _run_pipeline(dry_run: bool):
    from pipeline.daily_post import DailyPostPipeline

    client = await get_db_client()
    try:
        return await DailyPostPipeline(repository=client).run(dry_run=dry_run)
    finally:
        await close_db_client()


async def _post_counts() -> dict:
    client = await get_db_client()
    try:
        return await client.get_statistics()
    finally:
        await close_db_client()


async def _recent_posts(limit: int):
    client = await get_db_client()
    try:
        return await client.get_recent_posts(limit)
    finally:
        await close_db_client()


async def _create_tables() -> None:
    client: PostgresClient = await get_db_client()
    try:
        await client.create_tables()
    finally:
        await close_db_client()


def _print_error(error: DevotionalError) -> None:
    logger.error("Command failed", error_code=error.error_code, error=error.message)
    console.print(f"[bold red]{error.error_code}[/bold red] {error.message}")
    if isinstance(error, PipelineStepError) and error.details:
        console.print(f"  step: {error.step}")
        console.print(f"  details: {error.details}")
    for suggestion in error.suggestions:
        console.print(f"  - {suggestion}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
