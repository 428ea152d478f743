"""postkit CLI - render posts and manage the document index."""

from __future__ import annotations

import json

import click

from postkit.config import AppConfig, load_config, load_env_config
from postkit.errors import PostkitError
from postkit.log import setup_logging


def _get_config(ctx: click.Context) -> AppConfig:
    """Load the configuration once per invocation and set up logging."""
    if ctx.obj.get("config") is None:
        path = ctx.obj.get("config_path")
        try:
            config = load_config(path) if path else load_env_config()
        except (OSError, ValueError, TypeError) as e:
            click.echo(f"✗ Configuration error: {e}", err=True)
            raise click.Abort()

        setup_logging("DEBUG" if ctx.obj.get("verbose") else config.logging.level)
        ctx.obj["config"] = config
    return ctx.obj["config"]


def _echo_errors(errors: list[dict], limit: int = 5) -> None:
    if not errors:
        return
    click.echo(f"  Errors: {len(errors)}")
    for err in errors[:limit]:
        click.echo(f"    - {err['source']}: {err['error']}")
    if len(errors) > limit:
        click.echo(f"    ... and {len(errors) - limit} more")


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Configuration file path (default: $POSTKIT_CONFIG)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool):
    """postkit - render dated posts and index them by category and date."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option("--content-dir", default=None, help="Posts directory (overrides config)")
@click.option("--force-rebuild", is_flag=True, help="Re-render every post")
@click.pass_context
def build(ctx: click.Context, content_dir: str | None, force_rebuild: bool):
    """Render a posts directory into the document store."""
    from postkit.pipeline.pipeline import run_build

    cfg = _get_config(ctx)
    click.echo(f"Building from: {content_dir or cfg.content.content_dir}")

    try:
        stats = run_build(cfg, content_dir=content_dir or "", force_rebuild=force_rebuild)
    except (OSError, ValueError) as e:
        click.echo(f"✗ Build failed: {e}", err=True)
        raise click.Abort()

    rendered = stats["inserted"] + stats["updated"] + stats["unchanged"]
    click.echo(f"✓ Rendered: {rendered}/{stats['total']} posts")
    click.echo(f"  Inserted: {stats['inserted']}")
    click.echo(f"  Updated: {stats['updated']}")
    click.echo(f"  Skipped: {stats['skipped']}")
    click.echo(f"  Removed: {stats['removed']}")
    _echo_errors(stats["errors"])
    click.echo(f"✓ Index saved to: {cfg.storage.documents_path}")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the full document as JSON")
@click.pass_context
def render(ctx: click.Context, file: str, as_json: bool):
    """Render a single post and print the result.

    Nothing is written to the document store.
    """
    from postkit.pipeline.pipeline import RenderPipeline

    cfg = _get_config(ctx)
    pipeline = RenderPipeline(config=cfg)

    try:
        document = pipeline.render_file(file)
    except PostkitError as e:
        click.echo(f"✗ Render failed: {e}", err=True)
        raise click.Abort()

    if as_json:
        click.echo(json.dumps(document.to_dict(), indent=2, ensure_ascii=False))
        return

    click.echo(f"Identifier: {document.identifier}")
    click.echo(f"Title: {document.title}")
    click.echo(f"Published: {document.published_at.isoformat()}")
    click.echo(f"Categories: {', '.join(document.categories) or '-'}")
    for warning in document.warnings:
        click.echo(f"  Warning: {warning}")
    click.echo("")
    click.echo(document.rendered_body)


@cli.command("list")
@click.option("--category", default=None, help="Only posts in this category")
@click.option("--since", type=click.DateTime(), default=None, help="Published on or after")
@click.option("--until", type=click.DateTime(), default=None, help="Published on or before")
@click.pass_context
def list_documents(ctx: click.Context, category: str | None, since, until):
    """List indexed posts, most recent first."""
    from postkit.pipeline.pipeline import create_store
    from postkit.storage.corpus import CorpusIndex

    cfg = _get_config(ctx)
    store = create_store(cfg)
    if not store.exists():
        click.echo("No documents indexed. Run 'postkit build' first.")
        return

    corpus = CorpusIndex(default_category=cfg.permalink.default_category)
    try:
        _, documents = store.load()
        corpus.load(documents)
    except (ValueError, PostkitError) as e:
        click.echo(f"✗ Could not read document store: {e}", err=True)
        raise click.Abort()

    selected = corpus.by_category(category) if category else corpus.all()
    if since or until:
        in_range = {document.identifier for document in corpus.between(since, until)}
        selected = [document for document in selected if document.identifier in in_range]

    for document in selected:
        click.echo(f"{document.published_at:%Y-%m-%d}  {document.identifier}  {document.title}")
    click.echo(f"{len(selected)} post(s)")


@cli.command()
@click.option("--content-dir", default=None, help="Also check every post in this directory")
@click.pass_context
def validate(ctx: click.Context, content_dir: str | None):
    """Validate configuration and, optionally, a posts directory."""
    from postkit.pipeline.pipeline import RenderPipeline

    cfg = _get_config(ctx)
    click.echo("✓ Configuration is valid")
    click.echo(f"  Content dir: {cfg.content.content_dir}")
    click.echo(f"  Default category: {cfg.permalink.default_category}")
    click.echo(f"  Storage path: {cfg.storage.documents_path}")

    if not content_dir:
        return

    pipeline = RenderPipeline(config=cfg)
    try:
        stats = pipeline.build_directory(content_dir)
    except OSError as e:
        click.echo(f"✗ Validation failed: {e}", err=True)
        raise click.Abort()

    valid = stats["inserted"] + stats["updated"] + stats["unchanged"]
    if stats["errors"]:
        click.echo(f"✗ {len(stats['errors'])} of {stats['total']} posts failed", err=True)
        _echo_errors(stats["errors"])
        raise click.Abort()
    click.echo(f"✓ All {valid} posts are valid")


def main():
    """CLI entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
