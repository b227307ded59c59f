"""Main CLI entry point using Click."""

import json
import logging
from pathlib import Path

import click
from dotenv import load_dotenv

from talentscout import __version__
from talentscout.config import Settings, load_settings
from talentscout.core.exceptions import CriteriaValidationError
from talentscout.core.models import SearchResult
from talentscout.infrastructure.storage import CandidateStorage
from talentscout.pipeline import SearchPipeline, build_criteria
from talentscout.sources import SourceRegistry
from talentscout.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _get_base_dir() -> Path:
    """Get base directory from current working directory or a parent holding config/."""
    cwd = Path.cwd()
    if (cwd / "config" / "config.yaml").exists():
        return cwd
    for parent in cwd.parents:
        if (parent / "config" / "config.yaml").exists():
            return parent
    return cwd


@click.group()
@click.option("--base-dir", type=click.Path(exists=True), default=None, help="Project base directory")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__, prog_name="talentscout")
@click.pass_context
def cli(ctx: click.Context, base_dir: str | None, verbose: bool) -> None:
    """TalentScout - multi-source candidate sourcing."""
    ctx.ensure_object(dict)

    base = Path(base_dir) if base_dir else _get_base_dir()
    load_dotenv(base / ".env")
    setup_logging(verbose=verbose)

    ctx.obj["base_dir"] = base
    ctx.obj["verbose"] = verbose
    ctx.obj["_settings"] = None


def _get_settings(ctx: click.Context) -> Settings:
    """Get or load settings."""
    if ctx.obj["_settings"] is None:
        try:
            ctx.obj["_settings"] = load_settings(ctx.obj["base_dir"])
        except ValueError as e:
            raise click.ClickException(f"Invalid configuration: {e}") from e
    return ctx.obj["_settings"]


def _print_summary(result: SearchResult) -> None:
    click.echo("\nSources:")
    for name, outcome in result.results.items():
        if outcome.error:
            status = f"error: {outcome.error}"
        elif outcome.rate_limited:
            status = f"{len(outcome.records)} records (rate limited)"
        else:
            status = f"{len(outcome.records)} records"
        click.echo(f"  {name:<14} {status} [{outcome.elapsed_ms}ms]")

    m = result.deduplication_metrics
    click.echo(
        f"\nDeduplication: {m.original_count} records -> {m.deduplicated_count} profiles "
        f"({m.duplicates_removed} merged, {m.deduplication_rate:.1f}%)"
    )

    if not result.candidates:
        click.echo("\nNo candidates found")
        return

    click.echo(f"\nTop {min(10, len(result.candidates))} candidates:")
    for idx, profile in enumerate(result.candidates[:10], start=1):
        score = profile.score.final_score if profile.score else 0.0
        platforms = ",".join(profile.platforms)
        name = (profile.name or profile.id)[:30]
        click.echo(f"  {idx:02d} | {score:5.1f} | {name:<30} | {(profile.location or '-')[:20]:<20} | {platforms}")


@cli.command()
@click.argument("query")
@click.option("--location", "-l", default=None, help="Candidate location")
@click.option("--skill", "-s", "skills", multiple=True, help="Required skill (repeatable)")
@click.option("--keyword", "-k", "keywords", multiple=True, help="Extra keyword (repeatable)")
@click.option("--role", "-r", "roles", multiple=True, help="Role type (repeatable)")
@click.option("--source", "sources", multiple=True, help="Source to query (repeatable, default: from config)")
@click.option("--budget", type=float, default=None, help="Time budget in seconds (default: from config)")
@click.option("--limit", type=int, default=50, show_default=True, help="Maximum candidates returned")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write JSON payload to file")
@click.option("--save", is_flag=True, help="Upsert candidates into data/candidates.sqlite")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    location: str | None,
    skills: tuple[str, ...],
    keywords: tuple[str, ...],
    roles: tuple[str, ...],
    sources: tuple[str, ...],
    budget: float | None,
    limit: int,
    output: str | None,
    save: bool,
) -> None:
    """Search all sources for candidates matching QUERY."""
    settings = _get_settings(ctx)
    base_dir = ctx.obj["base_dir"]

    try:
        criteria = build_criteria(
            settings,
            query,
            location=location,
            skills=list(skills),
            keywords=list(keywords),
            role_types=list(roles),
            sources=list(sources),
            time_budget=budget,
            limit=limit,
        )
    except CriteriaValidationError as e:
        raise click.UsageError(str(e)) from e

    def on_progress(stage: str, msg: str) -> None:
        click.echo(f"[{stage}] {msg}")

    pipeline = SearchPipeline(settings)
    result = pipeline.run(criteria, on_progress=on_progress)
    _print_summary(result)

    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(result.to_payload(), indent=2, ensure_ascii=False), encoding="utf-8")
        click.echo(f"\nPayload written to {path}")

    if save and result.candidates:
        with CandidateStorage(base_dir / "data" / "candidates.sqlite") as storage:
            inserted, updated = storage.upsert_profiles(result.candidates)
        click.echo(f"Saved candidates: {inserted} new, {updated} updated")


@cli.command(name="sources")
@click.pass_context
def list_sources(ctx: click.Context) -> None:
    """List registered sources and whether they are enabled."""
    settings = _get_settings(ctx)
    defaults = set(settings.collection.default_sources)
    for name in SourceRegistry.all_names():
        source = SourceRegistry.create(name, settings)
        if not source.enabled:
            state = "disabled"
        elif not source.configured:
            state = "not configured"
        else:
            state = "enabled"
        marker = "*" if name in defaults else " "
        click.echo(f"{marker} {name:<14} {state}")


if __name__ == "__main__":
    cli()
