"""Command-line interface for cbioportal-dashboard."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from cbioportal_dashboard.client import CBioPortalClient
from cbioportal_dashboard.config import Config, ConfigFile, get_config
from cbioportal_dashboard.context import StudyContext
from cbioportal_dashboard.export import patients_to_csv
from cbioportal_dashboard.models import ChartData

console = Console()

T = TypeVar("T")


def configure_logging(verbose: bool) -> None:
    """Route log records through rich; DEBUG when verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.INFO if verbose else logging.WARNING)


def validate_config(config: Config) -> bool:
    """Validate configuration and print errors."""
    errors = config.validate()
    if errors:
        console.print("[bold red]Configuration errors:[/bold red]")
        for error in errors:
            console.print(f"  - {error}")
        console.print("\nPlease fix the environment variables or the config file.")
        return False
    return True


def run_with_context(config: Config, action: Callable[[StudyContext], Awaitable[T]]) -> T:
    """Open a client, build a fresh context and run ``action`` against it."""

    async def run() -> T:
        async with CBioPortalClient(config) as client:
            return await action(StudyContext(client, config))

    return asyncio.run(run())


async def _load_study(context: StudyContext, study_id: str) -> bool:
    with console.status(f"[bold green]Loading {study_id}...[/bold green]"):
        await context.load_study_data(study_id)
    if context.error or context.current_study is None:
        console.print(f"[red]Error: {context.error or 'Failed to load study data'}[/red]")
        return False
    return True


def chart_table(title: str, chart: ChartData, label_header: str = "Value") -> Table:
    table = Table(title=title)
    table.add_column(label_header, style="cyan")
    table.add_column("Count", justify="right", style="green")
    for label, value in zip(chart.labels, chart.values):
        table.add_row(label, str(value))
    return table


@click.group(invoke_without_command=True)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Dashboard statistics for cBioPortal cancer genomics studies.

    Use 'cbioportal-dashboard studies list' to find a study and
    'cbioportal-dashboard study overview STUDY_ID' to explore it.
    """
    ctx.ensure_object(dict)
    config = get_config()
    config.verbose = verbose or config.verbose
    ctx.obj["config"] = config
    configure_logging(config.verbose)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check that the cBioPortal API is reachable."""
    config: Config = ctx.obj["config"]

    async def action(context: StudyContext) -> None:
        info = await context.client.check_api_health()
        if info is None:
            console.print(f"[red]Error: {context.client.description} is not reachable[/red]")
            ctx.exit(1)
        console.print(
            f"[green]OK[/green] {context.client.description} "
            f"(portal {info.portal_version or 'unknown'}, db {info.db_version or 'unknown'})"
        )

    run_with_context(config, action)


@main.group()
def studies() -> None:
    """Commands for browsing studies."""
    pass


@studies.command("list")
@click.option("--keyword", "-k", help="Filter studies by keyword")
@click.option("--limit", "-l", default=20, help="Maximum number of studies to show")
@click.pass_context
def studies_list(ctx: click.Context, keyword: str | None, limit: int) -> None:
    """List public studies, PanCancer Atlas and TCGA first."""
    config: Config = ctx.obj["config"]

    async def action(context: StudyContext) -> None:
        await context.load_studies()
        if context.error:
            console.print(f"[red]Error: {context.error}[/red]")
            ctx.exit(1)

        shown = context.studies
        if keyword:
            keyword_lower = keyword.lower()
            shown = [
                s
                for s in shown
                if keyword_lower in s.name.lower()
                or keyword_lower in s.description.lower()
                or keyword_lower in s.study_id.lower()
            ]
        shown = shown[:limit]

        table = Table(title=f"Cancer Studies ({len(shown)} shown)")
        table.add_column("Study ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="green")
        table.add_column("Cancer Type", style="yellow")
        table.add_column("Samples", justify="right")

        for study in shown:
            table.add_row(
                study.study_id,
                study.name[:50] + "..." if len(study.name) > 50 else study.name,
                study.cancer_type_id or "N/A",
                str(study.all_sample_count),
            )

        console.print(table)

    run_with_context(config, action)


@studies.command("info")
@click.argument("study_id")
@click.pass_context
def studies_info(ctx: click.Context, study_id: str) -> None:
    """Get detailed information about a specific study."""
    config: Config = ctx.obj["config"]

    async def action(context: StudyContext) -> None:
        study = await context.client.fetch_study(study_id)
        if study is None:
            console.print(f"[red]Error: Failed to fetch study {study_id}[/red]")
            ctx.exit(1)

        panel_content = f"""
[bold]Study ID:[/bold] {study.study_id}
[bold]Name:[/bold] {study.name}
[bold]Description:[/bold] {study.description or 'N/A'}
[bold]Cancer Type:[/bold] {study.cancer_type_id}
[bold]Reference Genome:[/bold] {study.reference_genome or 'N/A'}
[bold]Citation:[/bold] {study.citation or 'N/A'}
[bold]Sample Count:[/bold] {study.all_sample_count}
"""
        console.print(Panel(panel_content, title=study.name or study_id))

    run_with_context(config, action)


@main.group()
def study() -> None:
    """Commands for aggregating a single study's data."""
    pass


@study.command("overview")
@click.argument("study_id")
@click.pass_context
def study_overview(ctx: click.Context, study_id: str) -> None:
    """Summarize patients, samples and profiles of a study."""
    config: Config = ctx.obj["config"]

    async def action(context: StudyContext) -> None:
        if not await _load_study(context, study_id):
            ctx.exit(1)
        overview = context.overview()
        if overview is None:
            console.print("[red]Error: No study loaded[/red]")
            ctx.exit(1)

        console.print(
            Panel(
                f"[bold]Patients:[/bold] {overview.patient_count}\n"
                f"[bold]Samples:[/bold] {overview.sample_count}\n"
                f"[bold]Clinical attributes:[/bold] "
                f"{len(context.patient_attributes)} patient, "
                f"{len(context.sample_attributes)} sample\n"
                f"[bold]Survival data:[/bold] {'yes' if context.has_survival_data else 'no'}\n"
                f"[bold]Cancer types:[/bold] {', '.join(context.cancer_types) or 'N/A'}",
                title=overview.study.name or study_id,
            )
        )

        profiles = Table(title="Molecular Profiles")
        profiles.add_column("Profile ID", style="cyan", no_wrap=True)
        profiles.add_column("Name", style="green")
        profiles.add_column("Alteration Type", style="yellow")
        for p in overview.molecular_profiles:
            profiles.add_row(p.molecular_profile_id, p.name, p.molecular_alteration_type)
        console.print(profiles)

    run_with_context(config, action)


@study.command("distribution")
@click.argument("study_id")
@click.argument("attribute_id")
@click.pass_context
def study_distribution(ctx: click.Context, study_id: str, attribute_id: str) -> None:
    """Show value counts of a patient attribute (e.g. SEX, CANCER_TYPE)."""
    config: Config = ctx.obj["config"]

    async def action(context: StudyContext) -> None:
        if not await _load_study(context, study_id):
            ctx.exit(1)
        chart = context.distribution(attribute_id)
        if not chart.labels:
            console.print(f"[yellow]No values for {attribute_id} in {study_id}[/yellow]")
            return
        console.print(chart_table(f"{attribute_id} in {study_id}", chart))

    run_with_context(config, action)


@study.command("ages")
@click.argument("study_id")
@click.pass_context
def study_ages(ctx: click.Context, study_id: str) -> None:
    """Show the patient age histogram."""
    config: Config = ctx.obj["config"]

    async def action(context: StudyContext) -> None:
        if not await _load_study(context, study_id):
            ctx.exit(1)
        console.print(chart_table(f"Age at diagnosis in {study_id}", context.age_histogram(), "Age"))

    run_with_context(config, action)


@study.command("survival")
@click.argument("study_id")
@click.pass_context
def study_survival(ctx: click.Context, study_id: str) -> None:
    """Show the Kaplan-Meier overall survival curve."""
    config: Config = ctx.obj["config"]

    async def action(context: StudyContext) -> None:
        if not await _load_study(context, study_id):
            ctx.exit(1)
        if not context.has_survival_data:
            console.print(f"[yellow]{study_id} has no OS_MONTHS/OS_STATUS data[/yellow]")
            return

        curve = context.survival_curve()
        table = Table(title=f"Overall Survival in {study_id}")
        table.add_column("Month", justify="right", style="cyan")
        table.add_column("Survival (%)", justify="right", style="green")
        for label, value in zip(curve.chart.labels, curve.chart.values):
            table.add_row(label, f"{value:.1f}")
        console.print(table)

        median = curve.median
        median_text = f"{median:.1f} months" if isinstance(median, float) else median
        console.print(f"[bold]Median survival:[/bold] {median_text}")

    run_with_context(config, action)


@study.command("mutations")
@click.argument("study_id")
@click.argument("gene_symbol")
@click.option("--top", "-t", type=int, help="Number of protein changes to show")
@click.pass_context
def study_mutations(ctx: click.Context, study_id: str, gene_symbol: str, top: int | None) -> None:
    """Summarize mutations of a gene in a study.

    Example: cbioportal-dashboard study mutations brca_tcga_pan_can_atlas_2018 TP53
    """
    config: Config = ctx.obj["config"]
    if top is not None:
        config.top_protein_changes = top

    async def action(context: StudyContext) -> None:
        if not await _load_study(context, study_id):
            ctx.exit(1)
        result = await context.search_mutations(gene_symbol)
        if not result.success or result.data is None:
            console.print(f"[red]Error: {result.error}[/red]")
            ctx.exit(1)

        summary = result.data
        console.print(
            Panel(
                f"[bold]Mutations:[/bold] {summary.total_mutations}\n"
                f"[bold]Mutated samples:[/bold] {summary.unique_samples} "
                f"of {context.sample_count}\n"
                f"[bold]Mutation rate:[/bold] {summary.mutation_rate:.1f}%",
                title=f"{summary.gene.hugo_gene_symbol} in {study_id}",
            )
        )
        console.print(chart_table("Mutation Types", summary.mutation_types, "Type"))

        changes = Table(title="Top Protein Changes")
        changes.add_column("Protein Change", style="cyan")
        changes.add_column("Count", justify="right", style="green")
        for p in summary.top_protein_changes:
            changes.add_row(p.protein_change, str(p.count))
        console.print(changes)

    run_with_context(config, action)


@study.command("export")
@click.argument("study_id")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: STUDY_ID_patients.csv)",
)
@click.pass_context
def study_export(ctx: click.Context, study_id: str, output: Path | None) -> None:
    """Export a study's patient clinical data as CSV."""
    config: Config = ctx.obj["config"]
    output = output or Path(f"{study_id}_patients.csv")

    async def action(context: StudyContext) -> None:
        if not await _load_study(context, study_id):
            ctx.exit(1)
        output.write_text(patients_to_csv(context.patients))
        console.print(f"[green]Wrote {context.patient_count} patients to {output}[/green]")

    run_with_context(config, action)


@click.group()
def config_cmd() -> None:
    """Manage configuration settings."""
    pass


@config_cmd.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config: Config = ctx.obj["config"]

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("REST API URL", config.api_base_url)
    table.add_row(
        "Request Timeout",
        f"{config.request_timeout}s" if config.request_timeout else "None",
    )
    table.add_row("Studies Page Size", str(config.studies_page_size))
    table.add_row("Clinical Data Page Size", str(config.clinical_data_page_size))
    table.add_row("Top Protein Changes", str(config.top_protein_changes))
    table.add_row("Verbose", str(config.verbose))

    console.print(table)


@config_cmd.command("set-api-url")
@click.argument("url")
def config_set_api_url(url: str) -> None:
    """Set the default cBioPortal API URL."""
    if not url.startswith(("http://", "https://")):
        console.print("[red]Error: URL must start with http:// or https://[/red]")
        sys.exit(1)
    config_file = ConfigFile()
    config_file.save_api_url(url)
    console.print(f"[green]API URL set to: {url}[/green]")
    console.print(f"[dim]Saved to: {config_file.config_file}[/dim]")


@main.command()
@click.option("--host", "-h", default="127.0.0.1", help="Host to bind to")
@click.option("--port", "-p", default=8000, help="Port to bind to")
@click.pass_context
def web(ctx: click.Context, host: str, port: int) -> None:
    """Start the dashboard web API.

    Requires the [web] optional dependencies.
    """
    config: Config = ctx.obj["config"]

    if not validate_config(config):
        sys.exit(1)

    try:
        import uvicorn
    except ImportError:
        console.print("[red]Web dependencies not installed.[/red]")
        console.print("Install with: pip install 'cbioportal-dashboard[web]'")
        sys.exit(1)

    console.print(
        Panel(
            f"[bold]Starting web server[/bold]\n\n"
            f"URL: http://{host}:{port}\n"
            f"Upstream: {config.api_base_url}\n"
            f"Press Ctrl+C to stop",
            title="cbioportal-dashboard web",
            border_style="green",
        )
    )

    uvicorn.run(
        "cbioportal_dashboard.web.app:app",
        host=host,
        port=port,
        reload=False,
    )


# Rename config command to avoid conflict
main.add_command(config_cmd, name="config")


if __name__ == "__main__":
    main()
