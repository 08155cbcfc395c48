"""Typer command-line interface for the PunchOut console.

Commands:

* ``customers`` -- list deployed customers for an environment.
* ``payload``   -- render the setup request for a customer (for editing).
* ``run``       -- execute a PunchOut attempt with live progress and the
  catalog redirect countdown.
* ``init``      -- write a default YAML configuration file.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.live import Live

from src.punchout_orchestrator import display
from src.punchout_orchestrator.api_client import PunchOutApiClient
from src.punchout_orchestrator.config import ConsoleConfig, load_console_config
from src.punchout_orchestrator.exceptions import (
    CustomerNotFoundError,
    PunchOutError,
)
from src.punchout_orchestrator.models import (
    STAGE_ORDER,
    CustomerContext,
    ExecutionResult,
    ProgressEvent,
    StageStatus,
)
from src.punchout_orchestrator.orchestrator import PunchOutOrchestrator
from src.punchout_orchestrator.redirect import BrowserNavigator, Navigator
from src.shared.config import ConsoleSettings
from src.shared.constants import APP_NAME, VERSION
from src.shared.errors import AppError
from src.shared.logging import setup_logging
from src.shared.utils import atomic_write_json

app = typer.Typer(
    name=APP_NAME,
    help="Operator console for executing and observing PunchOut setup requests.",
    no_args_is_help=True,
)

_DEFAULT_CONFIG_TEMPLATE = """\
# PunchOut console configuration
endpoints:
  api_base_url: http://localhost:8080/api
  gateway_base_url: http://localhost:9090
  setup_path: /punchout/setup

dispatch:
  timeout: 30.0
  content_type: text/xml

polling:
  max_attempts: 10
  interval_ms: 800
  initial_delay_ms: 500
  request_timeout: 10.0
  exhaustion_is_failure: true

redirect:
  enabled: true
  countdown_seconds: 3
  tick_ms: 1000

recording:
  enabled: true
  default_tester: developer@waters.com

environments:
  - dev
  - stage
  - prod
  - s4-dev
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{APP_NAME} {VERSION}")
        raise typer.Exit()


def _load_config(config_path: Optional[Path]) -> ConsoleConfig:
    settings = ConsoleSettings()
    setup_logging(APP_NAME, settings.log_level, logger_name="src")
    path = config_path or (Path(settings.config_path) if settings.config_path else None)
    return load_console_config(path, settings)


def _build_client(cfg: ConsoleConfig) -> PunchOutApiClient:
    return PunchOutApiClient(
        cfg.endpoints.api_base_url,
        cfg.endpoints.gateway_base_url,
        timeout=cfg.polling.request_timeout,
    )


def _check_environment(cfg: ConsoleConfig, environment: str) -> None:
    if environment not in cfg.environments:
        raise typer.BadParameter(
            f"unknown environment '{environment}' "
            f"(expected one of: {', '.join(cfg.environments)})",
            param_hint="--env",
        )


async def _list_customers(
    client: PunchOutApiClient, environment: str
) -> list[CustomerContext]:
    onboardings = await client.list_deployed_onboardings()
    return [
        CustomerContext.from_onboarding(record)
        for record in onboardings
        if record.environment == environment
    ]


async def _find_customer(
    client: PunchOutApiClient, customer_id: str, environment: str
) -> CustomerContext:
    for customer in await _list_customers(client, environment):
        if customer.customer_id == customer_id:
            return customer
    raise CustomerNotFoundError(customer_id, environment)


def _fail(error: Exception) -> None:
    display.print_error_panel(error)
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Async command bodies
# ---------------------------------------------------------------------------


async def _payload_async(cfg: ConsoleConfig, customer_id: str, environment: str) -> str:
    async with _build_client(cfg) as client:
        customer = await _find_customer(client, customer_id, environment)
        orchestrator = PunchOutOrchestrator(cfg, client)
        attempt = await orchestrator.prepare(customer, environment)
        return attempt.payload


async def _run_async(
    cfg: ConsoleConfig,
    customer_id: str,
    environment: str,
    *,
    payload: str | None,
    tester: str | None,
    test_name: str | None,
    notes: str | None,
    redirect: bool,
    new_window: bool,
    save: Path | None,
    navigator: Navigator,
) -> ExecutionResult:
    async with _build_client(cfg) as client:
        customer = await _find_customer(client, customer_id, environment)
        orchestrator = PunchOutOrchestrator(cfg, client)
        attempt = await orchestrator.prepare(
            customer, environment, payload, tester=tester, test_name=test_name, notes=notes
        )
        display.print_attempt_header(attempt)

        result: ExecutionResult | None = None
        initial = {stage: StageStatus.PENDING for stage in STAGE_ORDER}
        with Live(
            display.build_progress_table(initial),
            console=display._console,
            refresh_per_second=8,
            transient=True,
        ) as live:
            async for update in orchestrator.execute(attempt):
                if isinstance(update, ProgressEvent):
                    live.update(display.build_progress_table(update.stages))
                else:
                    result = update
        assert result is not None

        display.print_result_summary(result)
        if save is not None:
            atomic_write_json(save, result.to_dict())

        if redirect and result.catalog_url:
            url = result.catalog_url
            scheduler = orchestrator.schedule_redirect(
                result, navigator, on_tick=lambda remaining: display.print_countdown(remaining, url)
            )
            if scheduler is not None:
                if new_window:
                    scheduler.open_in_new_context()
                try:
                    await scheduler.wait()
                finally:
                    scheduler.cancel()
        return result


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """PunchOut testing console."""


@app.command()
def customers(
    env: str = typer.Option("dev", "--env", "-e", help="Target environment."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML."),
) -> None:
    """List deployed customers for an environment."""
    try:
        cfg = _load_config(config)
        _check_environment(cfg, env)

        async def _go() -> list[CustomerContext]:
            async with _build_client(cfg) as client:
                return await _list_customers(client, env)

        found = asyncio.run(_go())
    except (PunchOutError, AppError) as exc:
        _fail(exc)
        return
    display.print_customers_table(found, env)


@app.command()
def payload(
    customer_id: str = typer.Argument(..., help="Customer (onboarding) id."),
    env: str = typer.Option("dev", "--env", "-e", help="Target environment."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML."),
) -> None:
    """Render the setup request for a customer without sending it."""
    try:
        cfg = _load_config(config)
        _check_environment(cfg, env)
        text = asyncio.run(_payload_async(cfg, customer_id, env))
    except (PunchOutError, AppError) as exc:
        _fail(exc)
        return
    if output is not None:
        output.write_text(text, encoding="utf-8")
        typer.echo(f"Payload written to {output}")
    else:
        typer.echo(text)


@app.command()
def run(
    customer_id: str = typer.Argument(..., help="Customer (onboarding) id."),
    env: str = typer.Option("dev", "--env", "-e", help="Target environment."),
    payload_file: Optional[Path] = typer.Option(
        None, "--payload-file", "-p", help="Send this (edited) payload instead."
    ),
    tester: Optional[str] = typer.Option(None, "--tester", help="Tester e-mail."),
    name: Optional[str] = typer.Option(None, "--name", help="Test name."),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-text notes."),
    record: bool = typer.Option(True, "--record/--no-record", help="Persist the result."),
    redirect: bool = typer.Option(
        True, "--redirect/--no-redirect", help="Open the catalog after a countdown."
    ),
    new_window: bool = typer.Option(
        False, "--new-window", help="Open the catalog in a new tab immediately."
    ),
    save: Optional[Path] = typer.Option(None, "--save", help="Write the result as JSON."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config YAML."),
) -> None:
    """Execute a PunchOut setup attempt for a customer."""
    try:
        cfg = _load_config(config)
        _check_environment(cfg, env)
        cfg.recording.enabled = cfg.recording.enabled and record
        edited = payload_file.read_text(encoding="utf-8") if payload_file else None
        result = asyncio.run(
            _run_async(
                cfg,
                customer_id,
                env,
                payload=edited,
                tester=tester,
                test_name=name,
                notes=notes,
                redirect=redirect,
                new_window=new_window,
                save=save,
                navigator=BrowserNavigator(),
            )
        )
    except KeyboardInterrupt:
        display._console.print("[yellow]Interrupted.[/yellow]")
        raise typer.Exit(code=130)
    except (PunchOutError, AppError, OSError) as exc:
        _fail(exc)
        return

    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def init(
    output: Path = typer.Option(
        Path("punchout-console.yaml"), "--output", "-o", help="Config file to write."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Write a default configuration file."""
    if output.exists() and not force:
        display.print_error_panel(f"{output} already exists (use --force to overwrite)")
        raise typer.Exit(code=1)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(_DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    typer.echo(f"Configuration written to {output}")


def main() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    main()
