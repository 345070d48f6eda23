from __future__ import annotations
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import Config, load_config
from .downloader import RetryPolicy, StreamlinkFetcher
from .errors import AbemadlError
from .logging_setup import setup_logging
from .paths import default_log_path, default_urls_path, get_dirs
from .pipeline import CrawlRun, RunResult, playwright_factory
from .store import LogStore, UrlStore

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(no_args_is_help=True, help="Download new free episodes of tracked programs.")


def _urls_path(cfg: Config, override: str | None) -> Path:
    return Path(override or cfg.urls_path or default_urls_path())


def _fail(e: Exception):
    err_console.print(f"[red]error[/red]: {e}")
    raise typer.Exit(code=1)


def _print_targets(result: RunResult):
    t = Table(title=f"Download targets ({result.target_count})")
    t.add_column("Program"); t.add_column("Subtitle"); t.add_column("Video URL")
    for program in result.targets:
        for ep in program.episodes:
            t.add_row(program.title, ep.subtitle or "", ep.video_url)
    console.print(t)


@app.command()
def crawl(
    urls: str = typer.Option(None, "--urls", help="JSON list of program URLs"),
    dst: str = typer.Option(None, "--dst", "--recorded-dir", help="Root folder for downloaded videos"),
    browser_path: str = typer.Option(None, "--browser-path", help="Chromium executable to drive"),
    dry_run: bool = typer.Option(False, "--dry-run", "--dryrun", help="Only list what would be downloaded"),
    max_concurrency: int = typer.Option(None, "--max-concurrency", help="Max pages open at once (0 = no limit)"),
    config: str = typer.Option(None, "--config", help="config.yaml path"),
    log_level: str = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ..."),
):
    """Download videos from the URLs in a JSON list."""
    try:
        cfg = load_config(config)
    except AbemadlError as e:
        _fail(e)
    setup_logging(log_level or cfg.log_level)

    run = CrawlRun(
        urls=UrlStore(_urls_path(cfg, urls)),
        history=LogStore(cfg.log_path or default_log_path()),
        dst=dst or cfg.download_dir,
        fetcher=StreamlinkFetcher(quality=cfg.streamlink_quality),
        browser_factory=playwright_factory(browser_path or cfg.browser_path, cfg.page_timeout_ms),
        policy=RetryPolicy(attempts=cfg.download_attempts),
        max_concurrency=cfg.max_concurrency if max_concurrency is None else max_concurrency,
        scroll_interval=cfg.scroll_interval_seconds,
    )
    try:
        result = run.run(dry_run=dry_run)
    except AbemadlError as e:
        _fail(e)

    if dry_run:
        _print_targets(result)


@app.command()
def add(
    url: str = typer.Argument(..., help="Program URL to track"),
    urls: str = typer.Option(None, "--urls", help="JSON list of program URLs"),
):
    """Add a URL to the front of the JSON list."""
    try:
        cfg = load_config()
        setup_logging(cfg.log_level)
        UrlStore(_urls_path(cfg, urls)).add(url)
    except AbemadlError as e:
        _fail(e)


@app.command("urls")
def list_urls(urls: str = typer.Option(None, "--urls", help="JSON list of program URLs")):
    """Show tracked program URLs, newest first."""
    try:
        cfg = load_config()
        tracked = UrlStore(_urls_path(cfg, urls)).load()
    except AbemadlError as e:
        _fail(e)
    for i, u in enumerate(tracked, 1):
        console.print(f"{i:>3}. {u}")


@app.command("paths")
def show_paths():
    """Show where abemadl stores URLs, the download log and its own logs."""
    t = Table(title="abemadl paths")
    t.add_column("Kind"); t.add_column("Location")
    for k, p in get_dirs().items():
        t.add_row(k, str(p))
    t.add_row("urls", str(default_urls_path()))
    t.add_row("download log", str(default_log_path()))
    console.print(t)
