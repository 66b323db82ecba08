"""Command line interface for draftflow."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

# Heavy dependencies are imported inside the commands so that ``--help``
# and command registration work without opening the database.

logger = logging.getLogger(__name__)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.option("--user", "user_id", default=None, help="Act as this user")
@click.pass_context
def cli(ctx: click.Context, debug: bool, user_id: Optional[str]) -> None:
    """Draftflow content pipeline CLI.

    Generates marketing drafts with Gemini, lets you approve them section
    by section and publishes the approved parts.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["user_id"] = user_id
    # Set up logging before any other logging calls
    log_level = logging.DEBUG if debug else _settings(ctx).log_level
    logging.basicConfig(level=log_level, force=True)
    logger.debug("Debug mode enabled")


def _settings(ctx: click.Context):
    from .models.settings import Settings

    if "services" in ctx.obj:
        return ctx.obj["services"].settings
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = Settings(debug=ctx.obj.get("debug", False))
    return ctx.obj["settings"]


def _services(ctx: click.Context):
    from .services import Services

    if "services" not in ctx.obj:
        ctx.obj["services"] = Services.from_settings(_settings(ctx))
    return ctx.obj["services"]


def _user(ctx: click.Context) -> str:
    svc = _services(ctx)
    return ctx.obj.get("user_id") or svc.settings.dev_user_id or "cli"


def _fail(error: Exception) -> None:
    click.echo(f"❌ {error}", err=True)
    sys.exit(1)


def _parse_context(pairs: Tuple[str, ...]) -> dict:
    """``KEY=VALUE`` pairs; a value of ``@path`` is read from that file."""
    context = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{pair}'")
        if value.startswith("@"):
            value = Path(value[1:]).read_text(encoding="utf-8")
        context[key] = value
    return context


def _echo_draft(draft, full: bool = True) -> None:
    approved = draft.approved_section_names()
    click.echo(
        f"{draft.id}  {draft.pipeline:<12} {draft.status.value:<10} "
        f"{len(approved)}/{len(draft.sections)} approved  {draft.source_topic[:50]}"
    )
    if not full:
        return
    if draft.error:
        click.echo(f"  Error: {draft.error}")
    for name in draft.sections:
        mark = "✅" if draft.approvals.get(name) else "⬜"
        click.echo(f"\n{mark} [{name}]")
        click.echo(draft.section_text(name))


@cli.command()
def pipelines() -> None:
    """List available pipelines."""
    from .core.pipelines import AVAILABLE_PIPELINES

    click.echo("\n🧪 Available Pipelines:\n")
    for config in AVAILABLE_PIPELINES.values():
        click.echo(f"  {config.name}: {config.description}")
        click.echo(f"    Sections: {', '.join(config.sections)}")
        if config.required_context:
            click.echo(f"    Requires: {', '.join(config.required_context)}")


@cli.command()
@click.argument("pipeline")
@click.argument("topic")
@click.option("--scope", default=None, help="Grouping key, e.g. 2026-W04")
@click.option(
    "-c",
    "--context",
    "context_pairs",
    multiple=True,
    help="Extra pipeline input as KEY=VALUE, or KEY=@file",
)
@click.pass_context
def generate(
    ctx: click.Context,
    pipeline: str,
    topic: str,
    scope: Optional[str],
    context_pairs: Tuple[str, ...],
) -> None:
    """Generate a draft and wait for it to finish."""
    from .errors import DraftflowError

    svc = _services(ctx)
    user_id = _user(ctx)

    async def _generate():
        draft = await svc.orchestrator.start(
            pipeline, user_id, topic, scope=scope, context=_parse_context(context_pairs)
        )
        logger.info(f"Draft {draft.id} created, waiting for generation...")
        await svc.orchestrator.wait_idle()
        return svc.drafts.get(draft.id)

    try:
        draft = asyncio.run(_generate())
    except DraftflowError as e:
        _fail(e)
    _echo_draft(draft)


@cli.command(name="list")
@click.option("--pipeline", default=None, help="Only this pipeline")
@click.option("--status", default=None, help="Only drafts with this status")
@click.option("--scope", default=None, help="Only this scope")
@click.option("--limit", default=50, show_default=True)
@click.pass_context
def list_drafts(
    ctx: click.Context,
    pipeline: Optional[str],
    status: Optional[str],
    scope: Optional[str],
    limit: int,
) -> None:
    """List your drafts, newest first."""
    from .models.draft import DraftStatus

    svc = _services(ctx)
    try:
        status_filter = DraftStatus(status) if status else None
    except ValueError:
        raise click.BadParameter(
            f"Unknown status '{status}'", param_hint="--status"
        )

    drafts = svc.drafts.list(
        _user(ctx), pipeline=pipeline, status=status_filter, scope=scope, limit=limit
    )
    if not drafts:
        click.echo("No drafts found")
    for draft in drafts:
        _echo_draft(draft, full=False)


@cli.command()
@click.argument("draft_id")
@click.pass_context
def show(ctx: click.Context, draft_id: str) -> None:
    """Show a draft with all its sections."""
    from .errors import DraftflowError

    svc = _services(ctx)
    try:
        _echo_draft(svc.drafts.get(draft_id, user_id=_user(ctx)))
    except DraftflowError as e:
        _fail(e)


@cli.command()
@click.argument("draft_id")
@click.argument("section", required=False)
@click.option("--all", "approve_all", is_flag=True, help="Approve every section")
@click.pass_context
def approve(
    ctx: click.Context, draft_id: str, section: Optional[str], approve_all: bool
) -> None:
    """Approve one section of a draft, or all of them."""
    from .errors import DraftflowError

    if not section and not approve_all:
        raise click.UsageError("Give a SECTION or --all")

    svc = _services(ctx)
    try:
        if approve_all:
            draft = svc.gate.approve_all(draft_id, user_id=_user(ctx))
        else:
            draft = svc.gate.approve_section(draft_id, section, user_id=_user(ctx))
    except DraftflowError as e:
        _fail(e)
    click.echo(f"✅ Approved: {', '.join(draft.approved_section_names())}")


@cli.command()
@click.argument("draft_id")
@click.argument("section")
@click.pass_context
def reject(ctx: click.Context, draft_id: str, section: str) -> None:
    """Withdraw approval of one section."""
    from .errors import DraftflowError

    svc = _services(ctx)
    try:
        draft = svc.gate.reject_section(draft_id, section, user_id=_user(ctx))
    except DraftflowError as e:
        _fail(e)
    click.echo(f"Draft {draft.id} is now {draft.status.value}")


@cli.command(name="reset-approvals")
@click.argument("draft_id", required=False)
@click.pass_context
def reset_approvals(ctx: click.Context, draft_id: Optional[str]) -> None:
    """Clear approvals on one draft, or on all of your drafts."""
    from .errors import DraftflowError

    svc = _services(ctx)
    try:
        if draft_id:
            svc.gate.reset_approvals(draft_id, user_id=_user(ctx))
            click.echo(f"Approvals cleared on {draft_id}")
        else:
            count = svc.gate.reset_all_approvals(_user(ctx))
            click.echo(f"Approvals cleared on {count} drafts")
    except DraftflowError as e:
        _fail(e)


@cli.command()
@click.option("--scope", default=None, help="Only this scope")
@click.pass_context
def approved(ctx: click.Context, scope: Optional[str]) -> None:
    """List approved sections ready to publish."""
    svc = _services(ctx)
    sections = svc.gate.list_approved_sections(_user(ctx), scope=scope)
    if not sections:
        click.echo("Nothing approved yet")
    for section in sections:
        click.echo(
            f"{section.draft_id}  {section.pipeline}/{section.section_name}  "
            f"{section.source_topic[:50]}"
        )


@cli.command()
@click.argument("draft_id")
@click.pass_context
def posted(ctx: click.Context, draft_id: str) -> None:
    """Mark a draft as posted. Posted drafts are locked."""
    from .errors import DraftflowError

    svc = _services(ctx)
    try:
        draft = svc.orchestrator.mark_posted(draft_id, user_id=_user(ctx))
    except DraftflowError as e:
        _fail(e)
    click.echo(f"🔒 Draft {draft.id} marked as posted")


@cli.command()
@click.argument("draft_id")
@click.argument("section")
@click.option(
    "--destination",
    default="pdf",
    show_default=True,
    help="Publisher to send the section to",
)
@click.pass_context
def publish(ctx: click.Context, draft_id: str, section: str, destination: str) -> None:
    """Publish an approved section."""
    from .errors import DraftflowError

    svc = _services(ctx)
    user_id = _user(ctx)
    try:
        publisher = svc.publisher(destination)
        approved_section = svc.gate.get_approved_section(draft_id, section, user_id=user_id)
        result = asyncio.run(publisher.publish(approved_section, user_id))
    except DraftflowError as e:
        _fail(e)
    click.echo(f"📤 Published to {result.destination}: {result.reference}")


@cli.group()
def resume() -> None:
    """Manage the master resume used by job_hunter."""


@resume.command(name="set")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--bio", default=None, help="Short professional bio")
@click.option("--role", "roles", multiple=True, help="Target role; repeat for several")
@click.pass_context
def set_resume(ctx: click.Context, path: Path, bio: Optional[str], roles: Tuple[str, ...]) -> None:
    """Store the master resume read from PATH."""
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        raise click.BadParameter("Resume file is empty", param_hint="PATH")

    svc = _services(ctx)
    profile = svc.profiles.update_master_resume(
        _user(ctx), text, bio=bio, target_roles=list(roles) if roles else None
    )
    click.echo(f"📄 Master resume saved ({len(text)} characters)")
    if profile.target_roles:
        click.echo(f"  Target roles: {', '.join(profile.target_roles)}")


@resume.command(name="show")
@click.pass_context
def show_resume(ctx: click.Context) -> None:
    """Print the stored master resume."""
    svc = _services(ctx)
    profile = svc.profiles.get(_user(ctx))
    if profile is None or not profile.master_resume:
        click.echo("No master resume stored")
        return
    click.echo(profile.master_resume)


@cli.command(name="scan-trends")
@click.pass_context
def scan_trends(ctx: click.Context) -> None:
    """Scan trend sources once and store the results."""
    svc = _services(ctx)
    trends = asyncio.run(svc.scanner.scan())
    added = svc.trends.save_trends(trends)
    click.echo(f"📡 {len(trends)} trends scanned, {added} new")


@cli.command()
@click.argument("week")
@click.option("--region", default="NL", show_default=True)
@click.pass_context
def topics(ctx: click.Context, week: str, region: str) -> None:
    """Discover scored topics for an ISO week such as 2026-W04."""
    svc = _services(ctx)
    suggestions = asyncio.run(svc.topics.discover(week, region=region))
    for topic in suggestions:
        click.echo(f"{topic.viral_score:>3}  {topic.topic}  ({topic.revenue_potential})")


@cli.command()
@click.option("--minutes", type=int, default=None, help="Override the stale threshold")
@click.pass_context
def stale(ctx: click.Context, minutes: Optional[int]) -> None:
    """List drafts stuck in generation."""
    from datetime import timedelta

    svc = _services(ctx)
    older_than = timedelta(minutes=minutes) if minutes else None
    drafts = svc.orchestrator.stale_drafts(older_than)
    if not drafts:
        click.echo("✅ No stale drafts")
        return
    for draft in drafts:
        click.echo(f"⚠️  {draft.id} ({draft.pipeline}) pending since {draft.updated_at.isoformat()}")


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Display current configuration (without sensitive values)."""
    settings = _settings(ctx)

    click.echo("\n📋 Draftflow Configuration\n")
    click.echo(f"Debug Mode: {settings.debug}")
    click.echo(f"Log Level: {settings.log_level}")
    click.echo(f"Database: {settings.database_path}")
    click.echo(f"Model chain: {', '.join(settings.model_chain)}")

    click.echo("\n🔑 API Keys:")
    keys_status = {
        "Gemini": "✅ Configured" if settings.gemini_api_key else "❌ Missing",
        "Canva": (
            "✅ Configured"
            if settings.canva_client_id and settings.canva_client_secret
            else "❌ Missing"
        ),
    }
    for service, status in keys_status.items():
        click.echo(f"  {service}: {status}")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True)
def serve(host: str, port: int) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("draftflow.web.app:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    cli()
