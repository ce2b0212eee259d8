"""safesignal CLI: inspect text, run the pipeline and maintain counters."""

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from safesignal import __version__

console = Console()

_STRICTNESS = click.Choice(["permissive", "moderate", "strict"])

_VERDICT_STYLE = {"safe": "green", "questionable": "yellow", "unsafe": "red"}


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, help="Settings YAML file")
@click.pass_context
def main(ctx: click.Context, config_path: str | None):
    """safesignal: safety signal detection and moderation counters.

    Grade text with the lexical analyzer, run the full detection pipeline
    against the counter store, and trim counters to the rolling window.
    """
    from safesignal.config import load_settings
    from safesignal.log import configure_logging

    settings = load_settings(config_path)
    configure_logging(settings.log_level)
    ctx.obj = settings


# ── Analyze ──────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--strictness", "-s", default=None, type=_STRICTNESS)
@click.pass_obj
def analyze(settings, text: str, strictness: str | None):
    """Show the per-pass analyzer breakdown and verdict for TEXT."""
    from safesignal.config import build_analyzer
    from safesignal.moderation.mapper import map_reasons_to_categories
    from safesignal.moderation.models import FilterConfig, VerdictKind

    analyzer = build_analyzer(settings)
    config = FilterConfig.for_level(strictness or settings.strictness)
    report = analyzer.analyze_detailed(text, config)

    table = Table(title=f"Analysis ({config.strictness.name.lower()})")
    table.add_column("Pass", style="cyan")
    table.add_column("Triggered", justify="center")
    table.add_column("Detail")

    def flag(on: bool) -> str:
        return "[red]Y[/]" if on else "[green]N[/]"

    if report.sentiment is not None:
        table.add_row("sentiment", flag(report.sentiment.is_highly_negative), f"score {report.sentiment.score:.2f}")
    if report.patterns is not None:
        table.add_row("patterns", flag(bool(report.patterns)), escape(", ".join(report.patterns)) or "-")
    if report.context is not None:
        table.add_row(
            "context", flag(report.context.is_suspicious), escape(", ".join(report.context.suspicious_elements)) or "-"
        )
    table.add_row(
        "word ratio",
        flag(report.ratio_exceeded),
        f"{len(report.words.profane_words)}/{report.words.total_words} "
        f"({report.words.profanity_ratio * 100:.1f}%)",
    )
    console.print(table)

    verdict = report.verdict
    style = _VERDICT_STYLE[verdict.kind.value]
    console.print(f"\nVerdict: [{style}]{verdict.kind.value.upper()}[/] ({report.unsafe_count} signals)")
    categories = map_reasons_to_categories(
        verdict.reasons, analyzer.lexicon, unsafe=verdict.kind is VerdictKind.UNSAFE
    )
    if categories:
        console.print("Mapped categories: " + ", ".join(c.value for c in categories))


# ── Clean ────────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--replacement", "-r", default="***", help="Mask for profane words")
@click.option("--strictness", "-s", default=None, type=_STRICTNESS)
@click.pass_obj
def clean(settings, text: str, replacement: str, strictness: str | None):
    """Print TEXT with profane words masked."""
    from safesignal.config import build_analyzer
    from safesignal.moderation.models import StrictnessLevel

    analyzer = build_analyzer(settings)
    level = StrictnessLevel.parse(strictness) if strictness else settings.strictness
    click.echo(analyzer.clean_text(text, replacement=replacement, strictness=level))


# ── Evaluate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--user", "-u", "user_id", required=True, help="User id to record against")
@click.pass_obj
def evaluate(settings, text: str, user_id: str):
    """Run the full pipeline on TEXT and update USER's counters."""
    from safesignal.config import build_orchestrator

    with build_orchestrator(settings) as orchestrator:
        result = orchestrator.evaluate(text, user_id).result()

    if not result.categories:
        console.print("[green]No safety categories detected.[/]")
        return

    for category in result.categories:
        marker = "[red]HIGH[/]" if category.is_high_severity else "    "
        console.print(f"  {marker} [cyan]{category.value}[/] {category.display_name}")
    if result.requires_escalation:
        console.print("\n[red]Escalated for manual review.[/]")


# ── Stats ────────────────────────────────────────────────────────────


@main.command()
@click.argument("user_id")
@click.pass_obj
def stats(settings, user_id: str):
    """Print the counter document for USER_ID."""
    from safesignal.moderation.models import SafetyCategory
    from safesignal.signals.store import JsonCounterStore

    doc = JsonCounterStore(settings.store_dir).read_counter_document(user_id)
    if not doc:
        console.print(f"[yellow]No safety signals recorded for {escape(user_id)}.[/]")
        return

    table = Table(title=f"Safety signals for {escape(user_id)}")
    table.add_column("Category", style="cyan")
    table.add_column("Hits (30d)", justify="right")
    for category in SafetyCategory:
        hits = doc.get(category.counter_key)
        if hits:
            table.add_row(category.value, str(hits))
    console.print(table)

    summary = f"total_flags_30d: {doc.get('total_flags_30d', 0)}"
    if doc.get("flagged_for_review"):
        summary += f"\nflagged_for_review: priority {doc.get('review_priority')}"
        summary += f"\nflag_categories: {', '.join(doc.get('flag_categories', []))}"
    console.print(Panel(summary, title="Summary"))


# ── Sweep ────────────────────────────────────────────────────────────


@main.command()
@click.option("--user", "-u", "user_id", default=None, help="Sweep one user (default: all)")
@click.pass_obj
def sweep(settings, user_id: str | None):
    """Drop counter entries older than the rolling window."""
    from safesignal.config import build_sweeper

    report = build_sweeper(settings).sweep(user_id)
    console.print(f"Swept {report.users_swept} user(s), removed {report.entries_removed} entries.")
    for category, count in sorted(report.removed_by_category.items()):
        console.print(f"  {category}: {count}")
    for uid in report.failed_users:
        console.print(f"  [red]x[/] {escape(uid)}")


# ── Categories ───────────────────────────────────────────────────────


@main.command()
def categories():
    """List the safety category taxonomy."""
    from safesignal.moderation.models import SafetyCategory

    table = Table(title="Safety categories")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Family")
    table.add_column("High severity", justify="center")
    for category in SafetyCategory:
        info = category.info
        table.add_row(category.value, info.display_name, info.family, "[red]Y[/]" if info.high_severity else "")
    console.print(table)


if __name__ == "__main__":
    main()
