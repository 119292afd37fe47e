"""CLI command implementations for the tenant batch toolkit."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import click
from pydantic import ValidationError

from src.core.errors import ToolkitError
from src.core.result_aggregation import format_batch_summary, summarize
from src.models.batch_result import make_batch_items
from src.models.config import Config
from src.services.batch_processor import BatchProcessor
from src.services.graph_client import GraphClient
from src.services.report_io import read_items, write_records_csv, write_results_csv, write_results_html
from src.utils.deadline import Deadline
from src.utils.logger import configure_logging

if TYPE_CHECKING:
    from src.models.batch_result import BatchResult

DEFAULT_USER_FIELDS = (
    "id,displayName,userPrincipalName,accountEnabled,department,jobTitle,createdDateTime"
)


def _get_config() -> Config:
    """Load configuration from the environment and .env file."""
    try:
        config = Config()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise click.ClickException(f"Invalid configuration:\n{exc}") from exc
    configure_logging(config.log_level, json_output=config.log_json)
    return config


def _get_client(config: Config) -> GraphClient:
    return GraphClient(
        config.graph_access_token,
        base_url=config.graph_base_url,
        timeout=config.request_timeout,
    )


def _get_deadline(config: Config) -> Deadline | None:
    if config.deadline_seconds is None:
        return None
    return Deadline(config.deadline_seconds)


def _report_path(config: Config, name: str, suffix: str) -> Path:
    stamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return Path(config.report_dir) / f"{name}-{stamp}{suffix}"


def _finish_batch(config: Config, name: str, title: str, results: list[BatchResult]) -> None:
    """Write CSV and HTML reports, print the summary and fail the exit code on any failure."""
    csv_path = write_results_csv(results, _report_path(config, name, ".csv"))
    html_path = write_results_html(results, _report_path(config, name, ".html"), title)
    summary = summarize(results)

    if summary.failed:
        click.echo(f"\n[WARNING] {title} finished with failures")
    else:
        click.echo(f"\n[SUCCESS] {title} complete")
    click.echo(format_batch_summary(summary))
    click.echo(f"  Outcome: {summary.outcome.value}")
    click.echo(f"  Reports: {csv_path}, {html_path}")
    if summary.failed:
        raise SystemExit(1)


def _echo_progress(count: int, result: BatchResult) -> None:
    click.echo(f"  [{count}] {result.input}: {result.status.value} {result.detail}".rstrip())


# --- Listings ---


@click.command()
@click.option("--select", "select", default=DEFAULT_USER_FIELDS, help="Comma-separated user properties")
@click.option("--filter", "odata_filter", default=None, help="OData $filter expression")
@click.option("--output", type=click.Path(path_type=Path), default=None, help="CSV output path")
def export_users(select: str, odata_filter: str | None, output: Path | None) -> None:
    """Export every tenant user to CSV, following all result pages."""
    config = _get_config()
    client = _get_client(config)

    params: dict[str, str | int] = {"$select": select, "$top": config.page_size}
    if odata_filter:
        params["$filter"] = odata_filter
        params["$count"] = "true"

    fields = [field.strip() for field in select.split(",") if field.strip()]
    path = output or _report_path(config, "users", ".csv")
    users = client.list_all(
        "users",
        params,
        policy=config.retry_policy(),
        deadline=_get_deadline(config),
    )

    click.echo("[INFO] Exporting users...")
    try:
        count = write_records_csv(users, path, fields)
    except ToolkitError as exc:
        raise click.ClickException(f"User export stopped early: {exc}") from exc
    click.echo(f"\n[SUCCESS] Exported {count} users to {path}")


# --- Batch operations ---


@click.command()
@click.argument("group_id")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--column", default=None, help="CSV column holding user UPNs or ids")
@click.option("--workers", default=1, type=click.IntRange(min=1), help="Parallel workers")
@click.option("--quiet", is_flag=True, help="Do not print per-user progress")
def add_group_members(
    group_id: str,
    input_file: Path,
    column: str | None,
    workers: int,
    quiet: bool,
) -> None:
    """Add every user listed in INPUT_FILE to GROUP_ID."""
    from src.services.directory_actions import add_group_member_action

    config = _get_config()
    client = _get_client(config)
    deadline = _get_deadline(config)
    users = read_items(input_file, column)

    action = add_group_member_action(client, group_id, config.retry_policy(), deadline=deadline)
    processor = BatchProcessor(max_workers=workers, deadline=deadline)

    click.echo(f"[INFO] Adding {len(users)} users to group {group_id}...")
    results = processor.run(
        make_batch_items(users),
        action,
        on_progress=None if quiet else _echo_progress,
    )
    _finish_batch(config, "group-members", "Group membership", results)


@click.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--column", default=None, help="CSV column holding user UPNs or ids")
@click.option("--workers", default=1, type=click.IntRange(min=1), help="Parallel workers")
@click.option("--quiet", is_flag=True, help="Do not print per-user progress")
def disable_users(input_file: Path, column: str | None, workers: int, quiet: bool) -> None:
    """Block sign-in for every user listed in INPUT_FILE (offboarding)."""
    from src.services.directory_actions import disable_user_action

    config = _get_config()
    client = _get_client(config)
    deadline = _get_deadline(config)
    users = read_items(input_file, column)

    action = disable_user_action(client, config.retry_policy(), deadline=deadline)
    processor = BatchProcessor(max_workers=workers, deadline=deadline)

    click.echo(f"[INFO] Disabling {len(users)} users...")
    results = processor.run(
        make_batch_items(users),
        action,
        on_progress=None if quiet else _echo_progress,
    )
    _finish_batch(config, "disable-users", "User offboarding", results)
