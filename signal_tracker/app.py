"""Typer CLI entrypoint for the signal tracker."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from threading import Event
from typing import Iterable, List, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .analytics import AnalyticsRecorder
from .config import ConfigRepository, TrackerConfig
from .engine import Fetcher, ThreadPoolManager
from .engine.sinks import build_sink
from .errors import ConfigurationError
from .infra import ResourcePool, SQLiteStore, UserAgentPool
from .logging_conf import configure_logging, strategy_logger, tail_log
from .models import Candidate, Company, DetectionType, HireCandidate, ScanReport
from .orchestrator import ScanOrchestrator
from .scheduler import APSchedulerAdapter

app = typer.Typer(help="Company job and hire signal tracker", no_args_is_help=True)
scan_app = typer.Typer(name="scan", help="Run a scan now", no_args_is_help=True)
companies_app = typer.Typer(name="companies", help="Manage the tracked companies", no_args_is_help=True)
pool_app = typer.Typer(name="pool", help="Inspect the egress resource pool", no_args_is_help=True)
dedup_app = typer.Typer(name="dedup", help="Inspect the dedup store", no_args_is_help=True)
log_app = typer.Typer(name="log", help="View log files", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: TrackerConfig
    store: SQLiteStore
    resource_pool: ResourcePool
    scheduler: APSchedulerAdapter
    thread_pool: ThreadPoolManager
    orchestrator: ScanOrchestrator
    analytics: AnalyticsRecorder


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    config = repository.load_config()
    configure_logging(verbose=verbose)
    store = SQLiteStore(repository.store_path())
    resource_pool = ResourcePool.from_config(config.resources)
    ua_pool = UserAgentPool(config.user_agent_list if isinstance(config.user_agent_list, list) else None)
    thread_pool = ThreadPoolManager(config.scan.batch_size)
    fetcher = Fetcher(resource_pool, ua_pool)
    for entry in [*config.strategies.jobs, *config.strategies.hires]:
        strategy_logger(entry.name, verbose=verbose)
    analytics = AnalyticsRecorder()
    orchestrator = ScanOrchestrator(
        config=config,
        store=store,
        sink=build_sink(config.sinks, repository.locator.project_root),
        fetcher=fetcher,
        thread_pool=thread_pool,
        analytics=analytics,
    )
    return AppState(
        repository=repository,
        config=config,
        store=store,
        resource_pool=resource_pool,
        scheduler=APSchedulerAdapter(),
        thread_pool=thread_pool,
        orchestrator=orchestrator,
        analytics=analytics,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


# ----------------------------------------------------------------------
# Rendering
# ----------------------------------------------------------------------
def _render_report(report: ScanReport) -> Table:
    table = Table(title=f"Scan report · {report.detection_type.value}", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("metric", style="cyan")
    table.add_column("value", style="green")
    for key, value in report.summary().items():
        if key == "strategy_wins":
            value = ", ".join(f"{name}={count}" for name, count in value.items()) or "-"
        table.add_row(key, str(value))
    return table


def _render_candidates(candidates: Sequence[Candidate]) -> Table:
    table = Table(title=f"New signals · {len(candidates)}", box=box.SIMPLE_HEAD)
    table.add_column("Company", style="cyan", no_wrap=True)
    table.add_column("Signal", style="green", overflow="fold")
    table.add_column("Confidence", justify="right")
    table.add_column("Strategy", style="magenta")
    for candidate in candidates:
        if isinstance(candidate, HireCandidate):
            signal = f"{candidate.person_name} · {candidate.position}"
        else:
            signal = f"{candidate.title} · {candidate.location}"
        table.add_row(candidate.company, signal, str(candidate.confidence), candidate.strategy)
    return table


def _render_companies(companies: Sequence[Company]) -> Table:
    table = Table(title=f"Companies · {len(companies)}", box=box.SIMPLE_HEAD)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Active")
    table.add_column("Locators", style="green", overflow="fold")
    table.add_column("Last scanned", style="yellow")
    for company in companies:
        table.add_row(
            company.name,
            "yes" if company.is_active else "no",
            ", ".join(company.locators.values()) or "-",
            company.last_scanned_at.isoformat(timespec="seconds") if company.last_scanned_at else "-",
        )
    return table


def _render_pool(pool: ResourcePool) -> Table:
    stats = pool.stats()
    table = Table(
        title=f"Resource pool · {stats['active']}/{stats['total']} active · avg {stats['avg_response_time_ms']} ms",
        box=box.SIMPLE_HEAD,
    )
    table.add_column("Endpoint", style="cyan", no_wrap=True)
    table.add_column("Protocol")
    table.add_column("Active")
    table.add_column("Failures", justify="right")
    table.add_column("Last response (ms)", justify="right")
    for handle in pool.handles():
        table.add_row(
            handle.label,
            handle.protocol,
            "yes" if handle.is_active else "no",
            str(handle.consecutive_failures),
            f"{handle.last_response_time_ms:.0f}" if handle.last_response_time_ms is not None else "-",
        )
    return table


def _select_companies(state: AppState, names: Iterable[str]) -> list[Company] | None:
    wanted = {name.strip().lower() for name in names if name.strip()}
    if not wanted:
        return None
    selected = [company for company in state.store.list_companies() if company.name.lower() in wanted]
    if not selected:
        console.print("None of the requested companies are tracked.", style="yellow")
        raise typer.Exit(code=1)
    return selected


app.add_typer(scan_app, name="scan")
app.add_typer(companies_app, name="companies")
app.add_typer(pool_app, name="pool")
app.add_typer(dedup_app, name="dedup")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging")
) -> None:
    ctx.obj = build_state(verbose)


# ----------------------------------------------------------------------
# scan
# ----------------------------------------------------------------------
def _run_scan(ctx: typer.Context, detection_type: DetectionType, companies: List[str], monitor: bool) -> None:
    state = _get_state(ctx)
    selected = _select_companies(state, companies)
    if monitor and not state.resource_pool.empty:
        state.resource_pool.start_health_monitor(
            state.scheduler, state.config.resources.health_probe_interval
        )
        state.scheduler.start()
    cancel = Event()
    future = state.thread_pool.scan_runner().submit(
        state.orchestrator.run_scan, detection_type, cancel, selected
    )
    try:
        try:
            report = future.result()
        except KeyboardInterrupt:
            cancel.set()
            console.print("Cancelling after the companies already in flight…", style="yellow")
            report = future.result()
    except ConfigurationError as exc:
        console.print(f"Configuration error: {exc}", style="red")
        raise typer.Exit(code=1)
    finally:
        state.scheduler.shutdown()
    console.print(_render_report(report))
    if report.emitted:
        console.print(_render_candidates(report.emitted))
    else:
        console.print("No new signals this cycle.", style="dim")


@scan_app.command("jobs", help="Scan tracked companies for newly posted jobs.")
def scan_jobs(
    ctx: typer.Context,
    company: List[str] = typer.Option([], "--company", "-c", help="Only scan these companies."),
    monitor: bool = typer.Option(True, "--monitor/--no-monitor", help="Probe resources in the background."),
) -> None:
    _run_scan(ctx, DetectionType.JOBS, company, monitor)


@scan_app.command("hires", help="Scan tracked companies for newly announced hires.")
def scan_hires(
    ctx: typer.Context,
    company: List[str] = typer.Option([], "--company", "-c", help="Only scan these companies."),
    monitor: bool = typer.Option(True, "--monitor/--no-monitor", help="Probe resources in the background."),
) -> None:
    _run_scan(ctx, DetectionType.HIRES, company, monitor)


# ----------------------------------------------------------------------
# companies
# ----------------------------------------------------------------------
@companies_app.command("list", help="List tracked companies.")
def companies_list(
    ctx: typer.Context,
    active_only: bool = typer.Option(False, "--active-only", help="Hide inactive companies."),
) -> None:
    state = _get_state(ctx)
    companies = state.store.list_companies(active_only=active_only)
    if not companies:
        console.print("No companies yet; use `signal-tracker companies add` or `import`.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_companies(companies))


@companies_app.command("add", help="Add or update a tracked company.")
def companies_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Company name."),
    website: Optional[str] = typer.Option(None, "--website"),
    linkedin_url: Optional[str] = typer.Option(None, "--linkedin"),
    career_page_url: Optional[str] = typer.Option(None, "--careers"),
    inactive: bool = typer.Option(False, "--inactive", help="Track but skip during scans."),
) -> None:
    state = _get_state(ctx)
    company = Company(
        name=name,
        website=website,
        linkedin_url=linkedin_url,
        career_page_url=career_page_url,
        is_active=not inactive,
    )
    state.store.upsert_company(company)
    console.print(f"Saved company {company.name}.", style="green")


@companies_app.command("import", help="Import companies from a YAML or JSON roster.")
def companies_import(
    ctx: typer.Context,
    path: Optional[Path] = typer.Argument(None, help="Roster file (defaults to data/companies.yaml)."),
) -> None:
    state = _get_state(ctx)
    try:
        companies = state.repository.load_companies(path)
    except ConfigurationError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)
    if not companies:
        console.print("Roster is empty or missing.", style="yellow")
        raise typer.Exit(code=1)
    count = state.store.import_companies(companies)
    console.print(f"Imported {count} companies.", style="green")


# ----------------------------------------------------------------------
# pool
# ----------------------------------------------------------------------
@pool_app.command("status", help="Show resource handles and their health.")
def pool_status(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    if state.resource_pool.empty:
        console.print("No egress resources configured; requests go direct.", style="dim")
        return
    console.print(_render_pool(state.resource_pool))


@pool_app.command("probe", help="Run one health probe over every resource now.")
def pool_probe(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    if state.resource_pool.empty:
        console.print("No egress resources configured.", style="dim")
        return
    summary = state.resource_pool.run_health_probe()
    console.print(
        f"Probed {summary.total}: {summary.active} active, "
        f"{summary.reactivated} reactivated, {summary.deactivated} deactivated.",
        style="green",
    )
    console.print(_render_pool(state.resource_pool))


# ----------------------------------------------------------------------
# dedup
# ----------------------------------------------------------------------
@dedup_app.command("count", help="Number of events already reported.")
def dedup_count(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(f"{len(state.orchestrator.dedup)} dedup keys stored.")


@dedup_app.command("reset", help="Forget every reported event (they will be re-emitted).")
def dedup_reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    state = _get_state(ctx)
    if not yes and not typer.confirm("Reset all dedup keys?"):
        raise typer.Exit(code=1)
    state.orchestrator.dedup.reset()
    console.print("Dedup store cleared.", style="green")


# ----------------------------------------------------------------------
# log
# ----------------------------------------------------------------------
@log_app.command("show", help="Show the tail of the tracker log or a strategy log.")
def log_show(
    ctx: typer.Context,
    strategy: Optional[str] = typer.Option(None, "--strategy", help="Strategy name (default: tracker log)."),
    tail: int = typer.Option(100, "--tail", help="Number of lines."),
) -> None:
    state = _get_state(ctx)
    base_dir = state.repository.locator.logs_dir
    path = base_dir / "strategies" / f"{strategy}.log" if strategy else base_dir / "tracker.log"
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log lines yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False, end="")


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
