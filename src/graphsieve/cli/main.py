"""graphsieve CLI - browse a Logseq graph from the terminal.

This is the main entry point for the graphsieve command-line tool.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console

from graphsieve.config.loader import load_config
from graphsieve.logseq.journal import display_title
from graphsieve.logseq.names import build_candidates
from graphsieve.models.config import Configuration
from graphsieve.models.preview import PreviewState
from graphsieve.rendering.content import (
    AssetLink,
    ExternalLink,
    ImageSegment,
    PageLink,
    RefPlaceholder,
    TextSegment,
    render_content,
)
from graphsieve.rendering.engine import flatten_outline_text, outline_summary_text, plain_text
from graphsieve.services.assets import LocalAssetResolver
from graphsieve.services.exceptions import GraphNotFoundError
from graphsieve.services.graph_session import GraphSession
from graphsieve.services.outliner_api import LogseqHttpSource
from graphsieve.services.page_indexer import IndexBuilder
from graphsieve.services.page_listing import group_journals_by_month, split_journals
from graphsieve.services.page_locator import load_page, locate_page_file
from graphsieve.services.page_store import PageStore
from graphsieve.utils.index_progress import create_index_progress_callback
from graphsieve.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)
console = Console()

VIEWS = ("content", "outline", "plain", "summary")


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (default: ~/.config/graphsieve/config.yaml)",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(version="0.1.0", prog_name="graphsieve")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool):
    """graphsieve: index and render the pages of a Logseq graph."""
    if verbose:
        os.environ["GRAPHSIEVE_LOG_LEVEL"] = "DEBUG"
    configure_logging()

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _load_config(ctx: click.Context) -> Configuration:
    """Load configuration, turning failures into click errors."""
    config_path = ctx.obj.get("config_path") if ctx.obj else None
    try:
        return load_config(config_path)
    except FileNotFoundError as e:
        logger.error("config_not_found", path=str(config_path), error=str(e))
        raise click.ClickException(str(e))
    except (ValidationError, ValueError) as e:
        logger.error("config_validation_error", error=str(e))
        raise click.ClickException(f"Configuration validation failed:\n{e}")


def _open_session(config: Configuration) -> GraphSession:
    try:
        return GraphSession.for_local_graph(
            Path(config.graph.graph_path),
            graph_id=config.graph.resolved_graph_id,
            journals_path=Path(config.graph.journals_path) if config.graph.journals_path else None,
        )
    except GraphNotFoundError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.option("--api", "use_api", is_flag=True, help="Index through the Logseq HTTP API server")
@click.pass_context
def index(ctx: click.Context, use_api: bool):
    """Rebuild the page index for the configured graph."""
    config = _load_config(ctx)
    session = _open_session(config)
    graph_id = config.graph.resolved_graph_id
    logger.info("index_command_started", graph_id=graph_id, use_api=use_api or config.api.enabled)

    async def run():
        with PageStore(config.index.resolved_db_path) as store:
            builder = IndexBuilder(
                store,
                graph_id,
                batch_size=config.index.batch_size,
                batch_sleep=config.index.batch_sleep_ms / 1000.0,
                summary_max_chars=config.index.summary_max_chars,
            )
            progress_cb, cleanup = create_index_progress_callback(console)
            try:
                if use_api or config.api.enabled:
                    source = LogseqHttpSource(config.api.endpoint, config.api.token, config.api.timeout)
                    result = await builder.rebuild(source, progress_callback=progress_cb, session=session)
                else:
                    result = await builder.rebuild(session, progress_callback=progress_cb)
            finally:
                cleanup()
            return result, store.count(graph_id)

    result, total = asyncio.run(run())
    click.echo(
        f"Indexed {result.written} pages in {result.duration:.1f}s "
        f"({result.skipped} skipped, {total} in index)"
    )


@cli.command(name="list")
@click.option("--journals", is_flag=True, help="List journal pages grouped by month")
@click.option("--limit", type=int, default=50, show_default=True, help="Maximum records to read")
@click.pass_context
def list_pages(ctx: click.Context, journals: bool, limit: int):
    """List indexed pages, most recently modified first."""
    config = _load_config(ctx)
    graph_id = config.graph.resolved_graph_id
    with PageStore(config.index.resolved_db_path) as store:
        records = store.recent(graph_id, limit=limit)

    journal_records, page_records = split_journals(records)
    if journals:
        for month, group in group_journals_by_month(journal_records).items():
            click.echo(month)
            for record in group:
                title = display_title(record.name, config.graph.journal_date_pattern)
                click.echo(f"  {title}  {_first_summary_line(record.summary)}")
        return

    if not page_records:
        click.echo("No pages indexed. Run 'graphsieve index' first.")
        return
    for record in page_records:
        marker = "*" if record.favorite else " "
        click.echo(f"{marker} {record.name}  {_first_summary_line(record.summary)}")


def _first_summary_line(summary: list[str]) -> str:
    for line in summary:
        if line.strip():
            return line.strip()
    return ""


@cli.command()
@click.argument("name")
@click.option("--candidates", "show_candidates", is_flag=True, help="Print the probed file base names")
@click.pass_context
def resolve(ctx: click.Context, name: str, show_candidates: bool):
    """Show which file backs page NAME."""
    config = _load_config(ctx)
    session = _open_session(config)

    if show_candidates:
        for candidate in build_candidates(name, prefer_journal=True):
            click.echo(f"  {candidate}")

    resolved = asyncio.run(locate_page_file(name, session))
    if resolved is None:
        click.echo(f"Not found: {name}", err=True)
        ctx.exit(1)
    click.echo(str(Path(resolved.directory) / resolved.picked_name))


@cli.command()
@click.argument("name")
@click.option("--view", type=click.Choice(VIEWS), default="content", show_default=True)
@click.option("--hide-properties", is_flag=True, help="Drop 'key:: value' lines")
@click.option("--hide-references", is_flag=True, help="Drop block references and embeds")
@click.option("--hide-queries", is_flag=True, help="Drop {{query}} lines")
@click.option("--remove-macros", is_flag=True, help="Remove {{...}} macros")
@click.option("--normalize-tasks", is_flag=True, help="Show TODO/DONE as checkboxes")
@click.option("--strip-page-brackets", is_flag=True, help="Render [[Page]] as Page")
@click.option("--folder-mode", is_flag=True, help="Strip references that cannot be resolved")
@click.pass_context
def show(ctx: click.Context, name: str, view: str, **flags):
    """Render page NAME."""
    config = _load_config(ctx)
    session = _open_session(config)
    options = config.filters.model_copy(update={k: True for k, v in flags.items() if v})
    graph_id = config.graph.resolved_graph_id

    async def run():
        content = await load_page(name, session)
        if content.state is not PreviewState.NOT_FOUND:
            with PageStore(config.index.resolved_db_path) as store:
                builder = IndexBuilder(store, graph_id, summary_max_chars=config.index.summary_max_chars)
                await builder.ensure_page(name, session)
        return content

    content = asyncio.run(run())
    if content.state is PreviewState.NOT_FOUND:
        raise click.ClickException(f"Page not found: {name}")

    nodes = list(content.nodes)
    if view == "outline":
        text = flatten_outline_text(nodes, options)
    elif view == "plain":
        text = plain_text(nodes, options)
    elif view == "summary":
        text = outline_summary_text(nodes, options)
    else:
        assets = LocalAssetResolver(session.handles().assets_dir)
        text = "\n".join(
            "  " * line.depth + "".join(_format_segment(seg) for seg in line.segments)
            for line in render_content(nodes, options, assets, config.graph.journal_date_pattern)
        )

    if not text.strip():
        click.echo("(no content)")
        return
    click.echo(text)


def _format_segment(segment) -> str:
    if isinstance(segment, TextSegment):
        return segment.text
    if isinstance(segment, PageLink):
        return click.style(segment.label, fg="cyan", underline=True)
    if isinstance(segment, ExternalLink):
        return click.style(segment.label, fg="blue", underline=True)
    if isinstance(segment, AssetLink):
        return f"[{segment.label}]({segment.uri})"
    if isinstance(segment, ImageSegment):
        return f"[image: {segment.alt or segment.uri}]"
    if isinstance(segment, RefPlaceholder):
        return f"(({segment.ref_id}))"
    return ""


def main():
    """Main entry point for setuptools console script."""
    cli()


if __name__ == "__main__":
    main()
