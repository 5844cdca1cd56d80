"""
Command Line Interface for the Personal Curator.

This module is the user-facing entry point: it reads a content history from a
JSON file, runs the analysis pipeline, and shows or clears cached results.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.prompt import Confirm
from rich.table import Table

from curator import __version__
from curator.ai.orchestrator import AnalysisProgress, create_orchestrator
from curator.config import (
    AIMode,
    APIKeyManager,
    AppConfig,
    ConfigError,
    KeySource,
    load_config,
)
from curator.core.bundle import AnalysisBundle
from curator.core.content import ContentItem
from curator.core.profiles import Domain
from curator.storage.cache import create_cache
from curator.utils.logging import LogContext, setup_logging

logger = logging.getLogger(__name__)

console = Console()

CONTENT_ITEMS = TypeAdapter(List[ContentItem])


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def print_header(text: str) -> None:
    """Print styled header."""
    console.print(f"\n[bold cyan]{text}[/bold cyan]\n")


def print_success(text: str) -> None:
    """Print green success message."""
    console.print(f"[bold green]✓[/bold green] {text}")


def print_warning(text: str) -> None:
    """Print yellow warning message."""
    console.print(f"[bold yellow]⚠[/bold yellow] {text}")


def print_error(text: str) -> None:
    """Print red error message."""
    console.print(f"[bold red]✗[/bold red] {text}")


def print_info_panel(title: str, content: str, border_style: str = "blue") -> None:
    """Print info panel box."""
    console.print(Panel(content, title=title, border_style=border_style))


def confirm(prompt: str, default: bool = False) -> bool:
    """Prompt for yes/no confirmation."""
    return Confirm.ask(prompt, default=default, console=console)


def create_progress() -> Progress:
    """Create standard progress bar setup."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )


def load_items(path: Path) -> List[ContentItem]:
    """Read content items from a JSON file.

    The file holds either a list of items or an object with an ``items`` list.

    Raises:
        click.ClickException: If the file is unreadable or malformed.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read {path}: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("items", [])
    try:
        return CONTENT_ITEMS.validate_python(raw)
    except ValidationError as e:
        raise click.ClickException(
            f"{path} does not contain valid content items ({e.error_count()} error(s))"
        ) from e


def domain_highlight(bundle: AnalysisBundle, domain: Domain) -> str:
    """One short line describing a domain result."""
    envelope = bundle.get(domain)
    if envelope is None:
        return ""
    data = envelope.data
    if domain == Domain.EMOTION:
        emotions = data.emotions.model_dump()
        top = max(emotions, key=emotions.__getitem__)
        return f"dominant: {top} ({emotions[top]:.2f})"
    if domain == Domain.LIFESTYLE:
        hours = ", ".join(f"{h:02d}:00" for h in data.active_hours)
        return f"active at {hours}; {data.activity_level} activity"
    if domain == Domain.GROWTH:
        return f"strongest: {data.strongest_area()}, focus: {data.weakest_area()}"
    if domain == Domain.CREATIVE:
        return f"creativity {data.creativity_score}, {data.progression.value}"
    if domain == Domain.CULTURAL:
        return f"{data.music_mood} music; {', '.join(data.art_styles[:2])}"
    if domain == Domain.SUGGESTIONS:
        if not data.suggestions:
            return "no suggestions"
        return f"{len(data.suggestions)} suggestion(s), top: {data.suggestions[0].title}"
    return data.personality_type or "(no type)"


def print_bundle(bundle: AnalysisBundle) -> None:
    """Print a bundle as a summary table."""
    table = Table(title=f"Analysis for {bundle.user_id}")
    table.add_column("Domain", style="cyan")
    table.add_column("Source")
    table.add_column("OK", justify="center")
    table.add_column("Confidence", justify="right")
    table.add_column("Highlight")

    for domain in Domain:
        envelope = bundle.get(domain)
        if envelope is None:
            table.add_row(domain.value, "-", "-", "-", "[dim]not computed[/dim]")
            continue
        ok = "[green]yes[/green]" if envelope.success else "[yellow]no[/yellow]"
        table.add_row(
            domain.value,
            envelope.provenance.value,
            ok,
            f"{envelope.confidence:.0%}",
            domain_highlight(bundle, domain),
        )
    console.print(table)

    console.print(
        f"State: [bold]{bundle.state.value}[/bold]  "
        f"Updated: {bundle.updated_at:%Y-%m-%d %H:%M}  "
        f"Overall confidence: {bundle.overall_confidence():.0%}"
    )

    if bundle.comments:
        print_header("Comments")
        for envelope in bundle.comments:
            comment = envelope.data
            style = comment.style
            console.print(f"[bold]{style.tone}/{style.focus}/{style.persona}[/bold]: {comment.main}")
            if comment.insight:
                console.print(f"  [dim]{comment.insight}[/dim]")


def run_analysis(orchestrator, user_id, items, comment_count=None, progress_callback=None):
    """Run the pipeline to completion, timing it in the log."""
    with LogContext(f"Analysis of {len(items)} item(s) for {user_id}", logger=logger):
        return asyncio.run(
            orchestrator.run_full_analysis(
                user_id, items, comment_count=comment_count, progress_callback=progress_callback
            )
        )


def _cache_for(config: AppConfig):
    config.paths.ensure_dirs_exist()
    return create_cache(
        config.paths.cache_dir,
        namespace=config.cache.namespace,
        version=config.cache.version,
    )


# =============================================================================
# MAIN CLI GROUP
# =============================================================================

@click.group()
@click.version_option(__version__, prog_name="curator")
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='Custom config file')
@click.pass_context
def curator(ctx, verbose, debug, config_path):
    """
    Personal Curator - understand your photo posts with AI.

    Analyzes a content history (titles, comments, tags, quality scores and
    image descriptions) into emotion, lifestyle, growth, creative and
    personality profiles.
    """
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = "WARNING"
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        print_error(str(e))
        sys.exit(1)

    log_file = config.paths.log_dir / "curator.log" if debug else None
    setup_logging(level=level, log_file=log_file)

    ctx.ensure_object(dict)
    ctx.obj['config'] = config
    ctx.obj['verbose'] = verbose
    ctx.obj['debug'] = debug


# =============================================================================
# ANALYZE COMMAND - Main workflow
# =============================================================================

@curator.command()
@click.argument('input_path', metavar='INPUT', type=click.Path(exists=True, dir_okay=False))
@click.option('--user', '-u', 'user_id', required=True, help='User identifier')
@click.option('--comments', '-k', 'comment_count', type=click.IntRange(min=0),
              help='Number of dynamic comments to generate')
@click.option('--no-ai', is_flag=True, help='Use local synthesis only')
@click.option('--refresh', is_flag=True, help='Run the pipeline even if a cached result exists')
@click.option('--json', 'output_json', is_flag=True, help='Print the bundle as JSON')
@click.pass_context
def analyze(ctx, input_path, user_id, comment_count, no_ai, refresh, output_json):
    """
    Analyze a content history and cache the result.

    INPUT is a JSON file holding a list of content items.

    Example:
        curator analyze posts.json --user me --comments 3
    """
    config: AppConfig = ctx.obj['config']
    if no_ai:
        config = config.model_copy(
            update={"ai": config.ai.model_copy(update={"mode": AIMode.DISABLED})}
        )

    items = load_items(Path(input_path))
    orchestrator = create_orchestrator(config)

    if not refresh:
        cached = orchestrator.get_cached(user_id)
        if cached is not None:
            if output_json:
                click.echo(cached.model_dump_json(indent=2))
                return
            print_header("Cached Analysis")
            print_bundle(cached)
            console.print("\n[dim]Use --refresh to analyze again.[/dim]")
            return

    if not output_json:
        print_header("Personal Curator")
        console.print(f"Analyzing {len(items)} item(s) for [bold]{user_id}[/bold]")
        if not orchestrator.client.is_available():
            print_warning("AI unavailable; results are synthesized locally with low confidence")

    if output_json:
        bundle = run_analysis(orchestrator, user_id, items, comment_count)
        click.echo(bundle.model_dump_json(indent=2))
        return

    with create_progress() as progress:
        task = progress.add_task("Analyzing...", total=None)

        def on_progress(update: AnalysisProgress) -> None:
            progress.update(
                task,
                total=update.total_steps,
                completed=update.current_step,
                description=f"{update.stage} done",
            )

        bundle = run_analysis(orchestrator, user_id, items, comment_count, on_progress)

    print_success("Analysis complete")
    print_bundle(bundle)

    if not orchestrator.client.is_available():
        print_info_panel(
            "Unlock the Full Experience",
            "These results were synthesized locally.\n\n"
            "To enable Gemini analysis:\n"
            "  curator config set-key\n\n"
            "Then run analyze again with --refresh.",
            border_style="yellow",
        )


# =============================================================================
# SHOW / INVALIDATE COMMANDS
# =============================================================================

@curator.command()
@click.option('--user', '-u', 'user_id', required=True, help='User identifier')
@click.option('--json', 'output_json', is_flag=True, help='Print the bundle as JSON')
@click.pass_context
def show(ctx, user_id, output_json):
    """Show the cached analysis for a user."""
    bundle = _cache_for(ctx.obj['config']).load(user_id)
    if bundle is None:
        print_warning(f"No cached analysis for {user_id}")
        sys.exit(1)

    if output_json:
        click.echo(bundle.model_dump_json(indent=2))
    else:
        print_bundle(bundle)


@curator.command()
@click.option('--user', '-u', 'user_id', required=True, help='User identifier')
@click.option('--force', is_flag=True, help='Skip confirmation')
@click.pass_context
def invalidate(ctx, user_id, force):
    """Delete the cached analysis so the next run starts from empty."""
    if not force and not confirm(f"Delete cached analysis for {user_id}?"):
        return

    if _cache_for(ctx.obj['config']).invalidate(user_id):
        print_success(f"Cached analysis for {user_id} removed")
    else:
        print_warning(f"No cached analysis for {user_id}")


# =============================================================================
# CONFIG GROUP
# =============================================================================

@curator.group()
def config():
    """Manage configuration settings."""


@config.command('show')
@click.pass_context
def config_show(ctx):
    """Display current configuration."""
    cfg: AppConfig = ctx.obj['config']
    manager = APIKeyManager(paths_config=cfg.paths)
    has_key = manager.get_key() is not None

    print_header("Current Configuration")
    table = Table(title="Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("ai.mode", cfg.ai.mode.value)
    table.add_row("ai.available", "yes" if cfg.is_ai_available() else "no")
    table.add_row("ai.model_name", cfg.ai.model_name)
    table.add_row("ai.timeout_seconds", f"{cfg.ai.timeout_seconds:g}")
    table.add_row("api key", f"[CONFIGURED via {manager.get_key_source().value}]" if has_key else "[NOT SET]")
    table.add_row("analysis.comment_count", str(cfg.analysis.comment_count))
    table.add_row("analysis.max_suggestions", str(cfg.analysis.max_suggestions))
    table.add_row("analysis.enable_personality", str(cfg.analysis.enable_personality))
    table.add_row("cache.enabled", str(cfg.cache.enabled))
    table.add_row("paths.config_dir", str(cfg.paths.config_dir))
    table.add_row("paths.cache_dir", str(cfg.paths.cache_dir))
    console.print(table)


BACKENDS = {"keyring": KeySource.KEYRING, "file": KeySource.ENCRYPTED_FILE}


@config.command('set-key')
@click.option('--backend', type=click.Choice(sorted(BACKENDS)), default='keyring',
              help='Where to store the key')
@click.pass_context
def set_key(ctx, backend):
    """Store the Gemini API key securely."""
    print_header("Set Gemini API Key")
    api_key = click.prompt("Enter your Gemini API key", hide_input=True)

    manager = APIKeyManager(paths_config=ctx.obj['config'].paths)
    try:
        manager.store_key(api_key, BACKENDS[backend])
    except ConfigError as e:
        print_error(str(e))
        sys.exit(1)

    print_success(f"API key stored in {backend}")
    print_info_panel(
        "Next Steps",
        "Your Gemini API key is now configured.\n\n"
        "Run your first analysis:\n"
        "  curator analyze posts.json --user me",
    )


@config.command('clear-key')
@click.option('--backend', type=click.Choice(sorted(BACKENDS)), default='keyring',
              help='Which store to clear')
@click.option('--force', is_flag=True, help='Skip confirmation')
@click.pass_context
def clear_key(ctx, backend, force):
    """Remove the stored API key."""
    if not force and not confirm("Remove API key?"):
        return

    manager = APIKeyManager(paths_config=ctx.obj['config'].paths)
    try:
        manager.delete_key(BACKENDS[backend])
    except ConfigError as e:
        print_error(str(e))
        sys.exit(1)
    print_success("API key removed")


def main(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""
    curator(args=argv, prog_name="curator")


if __name__ == '__main__':
    main()
