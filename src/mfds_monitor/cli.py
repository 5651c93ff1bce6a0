"""
Command Line Interface for MFDS Regulatory Monitor
"""

import asyncio
import json
import sys
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from .config import load_config, get_config, print_config_validation
from .errors import RetrievalError
from .logging_config import setup_logging
from .models import UpdateCategory
from .prompts import build_update_prompt

console = Console()
stderr_console = Console(stderr=True)

CATEGORY_CHOICES = [c.value for c in UpdateCategory]


@click.group()
@click.option('--config', '-c', help='Configuration file path')
@click.option('--debug', '-d', is_flag=True, help='Enable debug mode')
@click.option('--validate-config', is_flag=True, help='Validate configuration and exit')
@click.option('--skip-validation', is_flag=True, help='Skip startup validation')
@click.pass_context
def cli(ctx, config, debug, validate_config, skip_validation):
    """MFDS Regulatory Monitor CLI - recent Korean food regulation notices"""
    ctx.ensure_object(dict)

    try:
        validate_startup = not skip_validation

        if config:
            ctx.obj['config'] = load_config(config, validate_startup=validate_startup)
        else:
            ctx.obj['config'] = get_config(validate_startup=validate_startup)

        if debug:
            ctx.obj['config'].debug = True

        setup_logging(ctx.obj['config'].logging, debug=ctx.obj['config'].debug)

        if validate_config:
            console.print("\n[bold blue]Configuration Validation Report[/bold blue]\n")
            print_config_validation()
            sys.exit(0)

    except ValueError as e:
        console.print(f"\n[red]Configuration Error:[/red] {e}")
        console.print("\nUse --validate-config to see detailed validation report.")
        console.print("Use --skip-validation to bypass validation (not recommended).")
        sys.exit(1)


@cli.command()
@click.option('--structured/--free-text', default=None,
              help='Request schema-constrained output (default: from configuration)')
@click.option('--category', type=click.Choice(CATEGORY_CHOICES), default=None, help='Only show this category')
@click.option('--timeout', type=float, default=None, help='Seconds to wait for the generation backend')
@click.option('--json', 'as_json', is_flag=True, help='Output records as JSON')
@click.pass_context
def fetch(ctx, structured, category, timeout, as_json):
    """Fetch recent MFDS updates once and print them.

    Examples:
        mfds-monitor fetch
        mfds-monitor fetch --structured --category 입법/행정예고
        mfds-monitor fetch --json > updates.json
    """
    from .service import create_update_service

    config = ctx.obj['config']
    out = stderr_console if as_json else console

    try:
        service = create_update_service(config, structured=structured, timeout=timeout)
        with out.status("[bold green]Searching mfds.go.kr...[/bold green]"):
            records = asyncio.run(service.get_updates(
                category=UpdateCategory(category) if category else None
            ))
    except RetrievalError as e:
        out.print(f"[red]Retrieval failed ({e.error_type}):[/red] {e.message}")
        if e.detail:
            out.print(f"[dim]{e.detail}[/dim]")
        sys.exit(1)

    if as_json:
        print(json.dumps([r.model_dump(mode="json") for r in records], ensure_ascii=False, indent=2))
        return

    if not records:
        console.print("[yellow]No updates found[/yellow]")
        return

    table = Table(title=f"MFDS updates ({len(records)})")
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Category", style="magenta")
    table.add_column("Title", style="bold")
    table.add_column("Summary")
    for record in records:
        table.add_row(record.date, record.category.value, f"[link={record.url}]{record.title}[/link]", record.summary)
    console.print(table)


@cli.command()
@click.option('--date', 'on_date', help='Reference date (YYYY-MM-DD, defaults to today)')
@click.option('--structured', is_flag=True, help='Compose the structured-output variant')
@click.pass_context
def prompt(ctx, on_date, structured):
    """Print the instruction sent to the generation backend."""
    today = None
    if on_date:
        try:
            today = datetime.strptime(on_date, '%Y-%m-%d').date()
        except ValueError:
            raise click.BadParameter("Use YYYY-MM-DD", param_hint="--date")

    text = build_update_prompt(
        today=today,
        structured=structured,
        lookback_days=ctx.obj['config'].retrieval.lookback_days,
    )
    click.echo(text)


@cli.command()
@click.option('--host', default=None, help='Bind address (default: from configuration)')
@click.option('--port', type=int, default=None, help='Port (default: PORT or configuration)')
def serve(host, port):
    """Start the HTTP server."""
    from .api import run_api_server

    sys.exit(run_api_server(host=host, port=port) or 0)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
