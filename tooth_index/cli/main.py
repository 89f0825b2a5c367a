"""Main CLI entry point for tooth-index."""

import json
import os
import sys
import logging
from pathlib import Path
from typing import List, Optional

import click
import yaml
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.panel import Panel

from ..core.configuration import default_config_dict, load_config
from ..core.engine import ToothIndexEngine
from ..core.exceptions import ToothIndexError
from ..core.interfaces import FetchResult, SearchPage
from ..fetcher import fetcher_factory
from ..search.query import SORT_FIELDS, SORT_ORDERS

# Initialize rich console for better output formatting
console = Console()


def setup_logging(verbose: bool = False):
    """Set up logging configuration."""
    # Check environment variable for log level override
    env_log_level = os.getenv('TOOTH_INDEX_LOG_LEVEL', '').upper()
    if env_log_level in ['DEBUG', 'INFO', 'WARNING', 'ERROR']:
        level = getattr(logging, env_log_level)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    log_format = os.getenv('TOOTH_INDEX_LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    logging.basicConfig(
        level=level,
        format=log_format
    )


def create_engine(ctx) -> ToothIndexEngine:
    return ToothIndexEngine(load_config(ctx.obj['config']))


def parse_ecosystems(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [name.strip() for name in value.split(',') if name.strip()]


def display_fetch_result(result: FetchResult):
    """Display a fetch run summary."""
    table = Table(title="Fetch Results")
    table.add_column("Ecosystem", style="cyan", no_wrap=True)
    table.add_column("Packages", style="green", justify="right")
    table.add_column("Status", style="white")

    for ecosystem in sorted(set(result.packages) | set(result.errors)):
        status = f"❌ {result.errors[ecosystem]}" if ecosystem in result.errors else "✅"
        table.add_row(ecosystem, str(result.packages.get(ecosystem, 0)), status)

    console.print(table)

    summary_text = f"Indexed: {sum(result.packages.values())}\nFailed ecosystems: {len(result.errors)}"
    if result.pruned:
        summary_text += f"\nPruned: {result.pruned}"
    console.print(Panel(summary_text, title="Fetch Summary", border_style="green" if result.success else "red"))


def display_search_results(result: SearchPage, query: str, page: int):
    """Display search results in a formatted table."""
    if not result.packages:
        console.print(f"[yellow]No packages found for:[/yellow] {query}")
        return

    table = Table(title=f"Search Results for '{query}' (page {page}/{result.page_count})")
    table.add_column("Identifier", style="cyan", no_wrap=True)
    table.add_column("Name", style="magenta")
    table.add_column("Latest", style="green")
    table.add_column("Description", style="white")
    table.add_column("Hotness", style="yellow", justify="right")
    table.add_column("Updated", style="blue")

    for package in result.packages:
        description = package.description or "No description"
        table.add_row(
            package.identifier,
            package.name,
            package.versions[0].version if package.versions else "N/A",
            description[:50] + ("..." if len(description) > 50 else ""),
            str(package.hotness),
            package.updated or "N/A"
        )

    console.print(table)


# Global options that apply to all commands
@click.group()
@click.option('--config', '-c', type=click.Path(),
              default=lambda: os.getenv('TOOTH_INDEX_CONFIG'),
              help='Path to configuration file (env: TOOTH_INDEX_CONFIG)')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging (env: TOOTH_INDEX_VERBOSE)')
@click.pass_context
def cli(ctx, config, verbose):
    """
    Discover, index and search Minecraft Bedrock teeth.

    \b
    Examples:

      # Fetch every ecosystem into the index
      tooth-index fetch

      # Fetch LeviLamina mods and drop packages that disappeared
      tooth-index fetch --ecosystems levilamina --prune

      # Search the index
      tooth-index search "+platform:levilamina economy"

      # Serve the read API
      tooth-index serve --port 8080
    """
    ctx.ensure_object(dict)
    ctx.obj['config'] = config

    if not verbose and os.getenv('TOOTH_INDEX_VERBOSE', '').lower() in ['true', '1', 'yes']:
        verbose = True

    ctx.obj['verbose'] = verbose
    setup_logging(verbose)


@cli.command()
@click.option('--ecosystems', '-e',
              default=lambda: os.getenv('TOOTH_INDEX_ECOSYSTEMS'),
              help='Comma-separated list of ecosystems to fetch (env: TOOTH_INDEX_ECOSYSTEMS)')
@click.option('--prune', is_flag=True,
              help='Remove indexed packages that a completed fetch no longer finds')
@click.option('--format', '-f', default='table', type=click.Choice(['table', 'json']),
              help='Output format')
@click.pass_context
def fetch(ctx, ecosystems, prune, format):
    """
    Fetch packages from upstream sources into the index.

    Every listed ecosystem is discovered and resolved, and each package found
    replaces its stored record. Without --ecosystems all registered
    ecosystems are fetched.

    Examples:

      tooth-index fetch

      tooth-index fetch --ecosystems endstone --format json
    """
    engine = None
    try:
        engine = create_engine(ctx)
        names = parse_ecosystems(ecosystems)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            disable=(format == 'json'),
        ) as progress:
            task = progress.add_task("Fetching packages...", total=None)
            result = engine.fetch_packages(names, prune=prune)
            progress.update(task, completed=True)

        if format == 'json':
            click.echo(json.dumps({
                'success': result.success,
                'packages': result.packages,
                'errors': result.errors,
                'pruned': result.pruned,
            }, indent=2))
        else:
            display_fetch_result(result)

        sys.exit(0 if result.success else 1)

    except ToothIndexError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if ctx.obj['verbose']:
            console.print_exception()
        sys.exit(1)
    finally:
        if engine is not None:
            engine.close()


@cli.command()
@click.argument('query', default='')
@click.option('--per-page', '-n', type=int, help='Results per page (defaults to the configured page size)')
@click.option('--page', '-p', default=1, type=int, help='Page number, starting at 1')
@click.option('--sort', '-s', default='hotness', type=click.Choice(SORT_FIELDS), help='Sort field')
@click.option('--order', '-o', default='desc', type=click.Choice(SORT_ORDERS), help='Sort order')
@click.option('--format', '-f', default='table', type=click.Choice(['table', 'json']),
              help='Output format')
@click.pass_context
def search(ctx, query, per_page, page, sort, order, format):
    """
    Search the package index.

    Terms prefixed with + are required; the remaining terms are alternatives.
    Terms shaped like key:value match tags exactly, other terms match name,
    description, author and tags as substrings.

    Examples:

      # Everything, most starred first
      tooth-index search

      # LeviLamina mods mentioning either term
      tooth-index search "+platform:levilamina economy shop"

      # Recently updated first
      tooth-index search chat --sort updated
    """
    engine = None
    try:
        engine = create_engine(ctx)
        result = engine.search(query, per_page=per_page, page=page, sort=sort, order=order)

        if format == 'json':
            click.echo(json.dumps({
                'pageCount': result.page_count,
                'items': [package.to_dict() for package in result.packages],
            }, indent=2))
        else:
            display_search_results(result, query, page)

    except ToothIndexError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if ctx.obj['verbose']:
            console.print_exception()
        sys.exit(1)
    finally:
        if engine is not None:
            engine.close()


@cli.command()
@click.option('--host', default=lambda: os.getenv('TOOTH_INDEX_HOST', '127.0.0.1'),
              help='Bind address (env: TOOTH_INDEX_HOST)')
@click.option('--port', default=lambda: int(os.getenv('TOOTH_INDEX_PORT', '8000')), type=int,
              help='Bind port (env: TOOTH_INDEX_PORT)')
@click.pass_context
def serve(ctx, host, port):
    """
    Serve the read API.

    Exposes /search, /packages/<identifier>, /teeth/<tooth>/<version> and
    /health over HTTP.
    """
    import uvicorn

    from ..api.app import create_app

    try:
        app = create_app(load_config(ctx.obj['config']))
    except ToothIndexError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(f"Serving tooth-index on [cyan]http://{host}:{port}[/cyan]")
    uvicorn.run(app, host=host, port=port, log_level="debug" if ctx.obj['verbose'] else "info")


@cli.command()
@click.option('--show-counts', is_flag=True, help='Show how many packages of each ecosystem are indexed')
@click.option('--format', '-f', default='table', type=click.Choice(['table', 'list', 'json']),
              help='Output format')
@click.pass_context
def list_fetchers(ctx, show_counts, format):
    """
    List the registered ecosystem fetchers.

    Examples:

      tooth-index list-fetchers

      tooth-index list-fetchers --show-counts
    """
    engine = None
    try:
        names = sorted(fetcher_factory.get_available_fetchers())
        counts = {}
        if show_counts:
            engine = create_engine(ctx)
            counts = engine.get_statistics()

        if format == 'json':
            if show_counts:
                click.echo(json.dumps(counts, indent=2))
            else:
                click.echo(json.dumps(names, indent=2))
            return

        if format == 'list':
            for name in names:
                console.print(name)
            return

        table = Table(title="Available Fetchers")
        table.add_column("Ecosystem", style="cyan", no_wrap=True)
        table.add_column("Fetcher", style="magenta")
        if show_counts:
            table.add_column("Indexed", style="green", justify="right")

        registered = fetcher_factory.get_registered_fetchers()
        for name in names:
            row = [name, registered[name].__name__]
            if show_counts:
                row.append(str(counts.get(name, 0)))
            table.add_row(*row)

        console.print(table)

    except ToothIndexError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        if engine is not None:
            engine.close()


def main() -> int:
    """Main CLI entry point."""
    try:
        cli(standalone_mode=False)
        return 0
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 130
    except SystemExit as e:
        return e.code
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        return 1


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command('init')
@click.option('--config-dir', type=click.Path(), default='~/.tooth-index',
              help='Configuration directory')
@click.option('--force', is_flag=True, help='Overwrite existing configuration')
@click.pass_context
def config_init(ctx, config_dir, force):
    """Initialize tooth-index configuration."""
    try:
        config_path = Path(config_dir).expanduser()
        config_file = config_path / 'config.yaml'

        if config_file.exists() and not force:
            console.print(f"[yellow]Configuration already exists at {config_file}[/yellow]")
            console.print("Use --force to overwrite")
            return

        config_path.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w') as f:
            yaml.dump(default_config_dict(), f, default_flow_style=False, sort_keys=False)

        console.print(f"✅ Configuration initialized at [cyan]{config_file}[/cyan]")
        console.print("\nNext steps:")
        console.print("1. Set GITHUB_TOKEN to raise the GitHub API rate limit")
        console.print("2. Fetch packages into the index:")
        console.print("   tooth-index fetch")

    except OSError as e:
        console.print(f"[red]Error initializing configuration:[/red] {e}")
        sys.exit(1)


@config.command('show')
@click.pass_context
def config_show(ctx):
    """Show the effective configuration."""
    try:
        app_config = load_config(ctx.obj['config'])
    except ToothIndexError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    effective = {
        'fetcher': {
            'request_timeout': app_config.fetcher.request_timeout,
            'retry_count': app_config.fetcher.retry_count,
            'retry_backoff': app_config.fetcher.retry_backoff,
            'concurrent_requests': app_config.fetcher.concurrent_requests,
            'github_token': '***' if app_config.fetcher.github_token else None,
            'user_agent': app_config.fetcher.user_agent,
        },
        'index': {
            'backend': app_config.index.backend.value,
            'path': app_config.index.path,
        },
        'search': {
            'default_per_page': app_config.search.default_per_page,
            'max_per_page': app_config.search.max_per_page,
        },
        'source_priority': [source.value for source in app_config.source_priority],
    }
    click.echo(yaml.dump(effective, default_flow_style=False, sort_keys=False))


if __name__ == '__main__':
    sys.exit(main())
