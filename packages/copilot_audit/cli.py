"""Command-line entry point invoked by the external scheduler."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable

import typer

from .activity import format_timestamp
from .config import Settings, load_settings
from .errors import ConfigurationError, CopilotAuditError
from .logging import configure_logging
from .pipeline import AuditIngestionWorker, IngestionReport

SUCCESS_EXIT_CODE = 0
CONFIG_ERROR_EXIT_CODE = 2
INGESTION_ERROR_EXIT_CODE = 3


@dataclass(frozen=True)
class CliConfig:
    """Global CLI options propagated to commands."""

    config_path: str | None
    log_level: str | None
    plain_logs: bool


WorkerFactory = Callable[[Settings], AuditIngestionWorker]


def _default_worker_factory(settings: Settings) -> AuditIngestionWorker:
    return AuditIngestionWorker(settings)


# Replaced in tests to inject fake transports.
worker_factory: WorkerFactory = _default_worker_factory


def _emit_error(exc: Exception, as_json: bool) -> None:
    """Render an error to stderr."""
    if as_json:
        typer.echo(json.dumps({"error": str(exc)}), err=True)
        return
    typer.echo(f"error: {exc}", err=True)


def _render_report(report: IngestionReport) -> str:
    lines = [
        f"Window: {format_timestamp(report.window_start)} .. {format_timestamp(report.window_end)}",
        f"Subscription: {report.subscription.value if report.subscription else 'unknown'}",
        f"Blobs listed: {report.blobs_listed}",
        f"Records fetched: {report.records_fetched}",
        f"Copilot records: {report.records_relevant}",
        f"Records sent: {report.records_sent}" + (" (dry run)" if report.dry_run else ""),
    ]
    if report.degraded_stages:
        lines.append(f"Degraded stages: {', '.join(report.degraded_stages)}")
    return "\n".join(lines)


def _require_config(ctx: typer.Context) -> CliConfig:
    cfg = ctx.obj
    if not isinstance(cfg, CliConfig):
        raise RuntimeError("CLI context is not initialized")
    return cfg


def _load(cfg: CliConfig, as_json: bool, **overrides: Any) -> Settings:
    """Load settings and configure logging, exiting on configuration errors."""
    try:
        settings = load_settings(cfg.config_path, **overrides)
    except ConfigurationError as exc:
        _emit_error(exc, as_json)
        raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE) from exc

    configure_logging(
        level=cfg.log_level or settings.logging.level,
        json_output=settings.logging.json_output and not cfg.plain_logs,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )
    return settings


def _lookback_override(lookback_hours: int | None) -> dict[str, Any]:
    if lookback_hours is None:
        return {}
    return {"management": {"lookback_hours": lookback_hours}}


def _run_command(as_json: bool, invoke: Callable[[], Any], render: Callable[[Any], str]) -> None:
    try:
        result = invoke()
    except CopilotAuditError as exc:
        _emit_error(exc, as_json)
        raise typer.Exit(code=INGESTION_ERROR_EXIT_CODE) from exc
    if as_json:
        payload = result.to_dict() if isinstance(result, IngestionReport) else result
        typer.echo(json.dumps(payload, sort_keys=True, separators=(",", ":")))
    else:
        typer.echo(render(result))
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


app = typer.Typer(no_args_is_help=True, help="Copilot audit log ingestion")
subscription_app = typer.Typer(help="Management Activity API subscription commands")
content_app = typer.Typer(help="Management Activity API content commands")


@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(
        None,
        "--config",
        envvar="COPILOT_AUDIT_CONFIG",
        help="YAML config file read ahead of the default locations",
    ),
    log_level: str | None = typer.Option(None, help="Override logging.level"),
    plain_logs: bool = typer.Option(False, "--plain-logs", help="Human-readable log lines"),
) -> None:
    """Initialize global CLI options."""
    ctx.obj = CliConfig(config_path=config, log_level=log_level, plain_logs=plain_logs)


@app.command("run")
def run_command(
    ctx: typer.Context,
    lookback_hours: int | None = typer.Option(
        None, min=1, max=24, help="Override management.lookback_hours"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Fetch and filter without sending"),
    as_json: bool = typer.Option(False, "--json", help="Emit the report as JSON"),
) -> None:
    """Run one ingestion pass."""
    cfg = _require_config(ctx)
    settings = _load(cfg, as_json, **_lookback_override(lookback_hours))

    def invoke() -> IngestionReport:
        with worker_factory(settings) as worker:
            return worker.run(dry_run=dry_run)

    _run_command(as_json, invoke, _render_report)


@subscription_app.command("start")
def subscription_start_command(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
) -> None:
    """Ensure the content subscription is active."""
    cfg = _require_config(ctx)
    settings = _load(cfg, as_json)

    def invoke() -> dict[str, str]:
        with worker_factory(settings) as worker:
            outcome = worker.ensure_subscription(worker.get_token())
        return {"content_type": settings.management.content_type, "outcome": outcome.value}

    _run_command(as_json, invoke, lambda data: f"{data['content_type']}: {data['outcome']}")


@content_app.command("list")
def content_list_command(
    ctx: typer.Context,
    lookback_hours: int | None = typer.Option(
        None, min=1, max=24, help="Override management.lookback_hours"
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
) -> None:
    """List content blobs available in the lookback window."""
    cfg = _require_config(ctx)
    settings = _load(cfg, as_json, **_lookback_override(lookback_hours))

    def invoke() -> list[dict[str, Any]]:
        with worker_factory(settings) as worker:
            start, end = worker.window()
            blobs = worker.list_content(worker.get_token(), start, end)
        return [
            {
                "content_id": blob.content_id,
                "content_uri": blob.content_uri,
                "content_created": blob.content_created,
            }
            for blob in blobs
        ]

    def render(items: list[dict[str, Any]]) -> str:
        if not items:
            return "No content available."
        return "\n".join(f"- {item['content_id']} {item['content_uri']}" for item in items)

    _run_command(as_json, invoke, render)


app.add_typer(subscription_app, name="subscription")
app.add_typer(content_app, name="content")


if __name__ == "__main__":
    app()
