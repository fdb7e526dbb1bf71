"""
Chefdesk - CLI Entry Point.

Usage:
    chefdesk serve            Start the API server
    chefdesk health           Check configuration
    chefdesk show <chef_id>   Print a chef's latest saved schedule
    chefdesk --help           Show help
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="chefdesk",
    help="Chefdesk - prep lists and production schedules for chefs.",
    add_completion=False,
)
console = Console()


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    import os

    import uvicorn

    # Hosting platforms set PORT
    actual_port = int(os.environ.get("PORT", port))

    console.print("\n[bold green]Chefdesk API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "chefdesk.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


@app.command()
def health() -> None:
    """Check configuration."""
    from chefdesk.config import get_settings
    from chefdesk.scheduling.session import default_window

    console.print("\n[bold]Chefdesk Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.chefdesk_env}")
        console.print(f"   Log level: {settings.log_level}")

        window = default_window()
        console.print(f"[green]OK[/green] Schedule window {window.start}-{window.end}")

        if settings.schedule_layout_strategy == "openai":
            if settings.openai_api_key.startswith("sk-"):
                console.print(f"[green]OK[/green] OpenAI API key configured ({settings.schedule_model})")
            else:
                console.print("[yellow]WARN[/yellow] OpenAI API key may be invalid")
        else:
            console.print(f"[green]OK[/green] Layout strategy: {settings.schedule_layout_strategy}")

        if settings.supabase_url.startswith("https://"):
            console.print("[green]OK[/green] Supabase URL configured")
        else:
            console.print("[red]FAIL[/red] Supabase URL missing or invalid")

        if settings.langchain_tracing_v2 and settings.langchain_api_key:
            console.print("[green]OK[/green] LangSmith tracing enabled")
        else:
            console.print("[dim]INFO[/dim] LangSmith tracing disabled")

        console.print("\n[green]All checks passed![/green]")

    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def show(chef_id: str = typer.Argument(..., help="Chef (owner) id")) -> None:
    """Print a chef's latest saved schedule."""
    from chefdesk.db.client import get_service_client
    from chefdesk.scheduling.errors import TransientIOError
    from chefdesk.scheduling.persistence import ScheduleRepository
    from chefdesk.scheduling.session import default_window

    repository = ScheduleRepository(get_service_client(), default_window())
    try:
        loaded = asyncio.run(repository.load_latest(chef_id))
    except TransientIOError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if loaded is None:
        console.print(f"[dim]No saved schedule for {chef_id}[/dim]")
        return

    record = loaded.record
    table = Table(title=f"Prep schedule {record.window.start}-{record.window.end}")
    table.add_column("Item")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Minutes", justify="right")
    for task in sorted(record.tasks, key=lambda t: t.start_minutes):
        table.add_row(task.display_name, task.start_time, task.end_time, str(task.duration_minutes))

    console.print(table)
    if record.updated_at:
        console.print(f"[dim]Last saved {record.updated_at.isoformat()}[/dim]")
    if loaded.invalid_task_count:
        console.print(f"[yellow]{loaded.invalid_task_count} invalid task(s) skipped[/yellow]")


@app.command()
def version() -> None:
    """Show version information."""
    from chefdesk import __version__

    console.print(f"Chefdesk version {__version__}")


if __name__ == "__main__":
    app()
