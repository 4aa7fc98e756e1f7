#!/usr/bin/env python3
"""
ASOF Site CLI.

Runs the web server, the background worker and scheduler, database
migrations and the initial seed. Use --service to pick what to run and
--action to control long-running services.

Usage:
    python cli.py --help
    python cli.py --service server --reload --verbose
    python cli.py --service migrate --migrate-action upgrade
    python cli.py --service seed
    python cli.py --service test --test-type unit
"""

import asyncio
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import click
import structlog

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from asof.backend.core.logging import get_logger, setup_logging

LONG_RUNNING_SERVICES = {"server", "worker", "scheduler"}
SERVICES = ["server", "worker", "scheduler", "health", "config", "test", "info", "migrate", "seed"]
ALEMBIC_INI = PROJECT_ROOT / "asof" / "backend" / "migrations" / "alembic.ini"


def validate_project_root() -> Path:
    if not (PROJECT_ROOT / ".project_root").exists():
        _fail("Error: .project_root not found. Run from project root.")
    return PROJECT_ROOT


def _fail(message: str, exit_code: int = 1) -> None:
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(exit_code)


def _find_process_on_port(port: int) -> list[int]:
    result = subprocess.run(["lsof", "-ti", f":{port}"], capture_output=True, text=True)
    return [int(pid) for pid in result.stdout.split() if pid.strip()]


def _service_stop(logger, service: str, port: int) -> None:
    pids = _find_process_on_port(port)
    if not pids:
        click.echo(f"No {service} running on port {port}.")
        return
    for pid in pids:
        os.kill(pid, signal.SIGINT)
        logger.info("Sent SIGINT", extra={"service": service, "pid": pid, "port": port})
    click.echo(f"{service.title()} on port {port} stopped (PID: {', '.join(map(str, pids))}).")


def _service_status(service: str, port: int) -> None:
    pids = _find_process_on_port(port)
    if pids:
        click.echo(f"{service.title()} is running on port {port} (PID: {', '.join(map(str, pids))}).")
    else:
        click.echo(f"{service.title()} is not running on port {port}.")


def _get_service_port(port: int | None) -> int:
    if port is not None:
        return port
    from asof.backend.core.config import get_app_config
    return get_app_config().application.server.port


def _run_subprocess(logger, cmd: list[str], label: str) -> None:
    """Run a foreground child process until it exits or Ctrl+C."""
    try:
        subprocess.run(cmd, check=True, cwd=PROJECT_ROOT)
    except KeyboardInterrupt:
        logger.info(f"{label} stopped")
    except subprocess.CalledProcessError as e:
        logger.error(f"{label} exited with an error", extra={"exit_code": e.returncode})
        sys.exit(e.returncode)


@click.command()
@click.option("--service", "-s", type=click.Choice(SERVICES), default="info", help="Service or command to run.")
@click.option(
    "--action", "-a",
    type=click.Choice(["start", "stop", "restart", "status"]),
    default="start",
    help="Lifecycle action for long-running services (server, worker, scheduler).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output (INFO level logging).")
@click.option("--debug", "-d", is_flag=True, help="Enable debug output (DEBUG level logging).")
@click.option("--host", default=None, help="Server host.")
@click.option("--port", default=None, type=int, help="Server port.")
@click.option("--reload", is_flag=True, help="Enable auto-reload (server only).")
@click.option(
    "--test-type",
    type=click.Choice(["all", "unit", "integration"]),
    default="all",
    help="Test type to run.",
)
@click.option("--coverage", is_flag=True, help="Run tests with coverage.")
@click.option(
    "--migrate-action",
    type=click.Choice(["upgrade", "downgrade", "current", "history", "autogenerate"]),
    default="current",
    help="Migration action.",
)
@click.option("--revision", default="head", help="Target revision for upgrade/downgrade.")
@click.option("-m", "--message", default=None, help="Migration message (for autogenerate).")
@click.option("--workers", default=1, type=int, help="Number of worker processes.")
def main(
    service: str,
    action: str,
    verbose: bool,
    debug: bool,
    host: str | None,
    port: int | None,
    reload: bool,
    test_type: str,
    coverage: bool,
    migrate_action: str,
    revision: str,
    message: str | None,
    workers: int,
) -> None:
    """
    ASOF Site CLI.

    \b
    Examples:
        python cli.py --service server --reload --verbose
        python cli.py --service server --action status
        python cli.py --service worker --workers 2
        python cli.py --service scheduler
        python cli.py --service migrate --migrate-action upgrade
        python cli.py --service migrate --migrate-action autogenerate -m "add events table"
        python cli.py --service seed
        python cli.py --service test --test-type unit --coverage
    """
    validate_project_root()

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(level=log_level, format_type="console")
    structlog.contextvars.bind_contextvars(source="cli")
    logger = get_logger(__name__)
    logger.debug("CLI invoked", extra={"service": service, "action": action, "log_level": log_level})

    if service in LONG_RUNNING_SERVICES and action != "start":
        service_port = _get_service_port(port)
        if action == "stop":
            _service_stop(logger, service, service_port)
            return
        if action == "status":
            _service_status(service, service_port)
            return
        _service_stop(logger, service, service_port)
        time.sleep(2)

    if service == "server":
        run_server(logger, host, port, reload)
    elif service == "worker":
        run_worker(logger, workers)
    elif service == "scheduler":
        run_scheduler(logger)
    elif service == "health":
        check_health(logger)
    elif service == "config":
        show_config(logger)
    elif service == "test":
        run_tests(logger, test_type, coverage)
    elif service == "migrate":
        run_migrations(logger, migrate_action, revision, message)
    elif service == "seed":
        run_seed(logger)
    else:
        show_info(logger)


def run_server(logger, host: str | None, port: int | None, reload: bool) -> None:
    """Start uvicorn serving the API, the public site and the admin."""
    from asof.backend.core.config import get_app_config

    try:
        server_config = get_app_config().application.server
    except (FileNotFoundError, ValueError) as e:
        logger.error("Failed to load configuration", extra={"error": str(e)})
        _fail(f"Error: could not load config/settings/application.yaml: {e}")

    server_host = host or server_config.host
    server_port = port or server_config.port
    logger.info("Starting server", extra={"host": server_host, "port": server_port, "reload": reload})

    cmd = [
        sys.executable, "-m", "uvicorn",
        "asof.backend.main:app",
        "--host", server_host,
        "--port", str(server_port),
    ]
    if reload:
        cmd.append("--reload")

    click.echo(f"Starting server at http://{server_host}:{server_port}")
    click.echo("Press Ctrl+C to stop\n")
    _run_subprocess(logger, cmd, "Server")


def _require_redis(logger) -> None:
    try:
        from asof.backend.core.config import get_redis_url
        redis_url = get_redis_url()
    except Exception as e:
        logger.error("Failed to load Redis configuration", extra={"error": str(e)})
        _fail(f"Error: Redis not configured: {e}")
    logger.debug("Redis configured", extra={"redis_url": redis_url.split("@")[-1]})


def run_worker(logger, workers: int) -> None:
    """Start the Taskiq worker that executes scheduled publishing and cleanup."""
    _require_redis(logger)
    logger.info("Starting background task worker", extra={"workers": workers})

    cmd = [
        sys.executable, "-m", "taskiq",
        "worker",
        "asof.backend.tasks.broker:broker",
        "--workers", str(workers),
    ]
    click.echo(f"Starting Taskiq worker with {workers} worker(s)")
    click.echo("Press Ctrl+C to stop\n")
    _run_subprocess(logger, cmd, "Worker")


def run_scheduler(logger) -> None:
    """Start the Taskiq scheduler that enqueues the cron tasks."""
    _require_redis(logger)

    from asof.backend.tasks.scheduled import SCHEDULED_TASKS, register_scheduled_tasks

    register_scheduled_tasks()
    click.echo("Registered scheduled tasks:")
    for task_name, task_config in SCHEDULED_TASKS.items():
        click.echo(f"  - {task_name}: {task_config['schedule'][0]['cron']}")
    click.echo()

    cmd = [
        sys.executable, "-m", "taskiq",
        "scheduler",
        "asof.backend.tasks.scheduler:scheduler",
    ]
    click.echo("Starting Taskiq scheduler")
    click.echo("WARNING: Run only ONE scheduler instance to avoid publishing twice")
    click.echo("Press Ctrl+C to stop\n")
    _run_subprocess(logger, cmd, "Scheduler")


def check_health(logger) -> None:
    """Check that configuration, secrets, models, templates and the app load."""
    click.echo("Checking application health...\n")
    checks: list[tuple[str, bool, str | None]] = []

    def check(name: str, probe) -> None:
        try:
            detail = probe()
            checks.append((name, True, detail))
            logger.debug("Check passed", extra={"check": name})
        except Exception as e:
            checks.append((name, False, str(e)))
            logger.error("Check failed", extra={"check": name, "error": str(e)})

    def yaml_config() -> str:
        from asof.backend.core.config import get_app_config
        return f"App: {get_app_config().application.name}"

    def secrets() -> str:
        from asof.backend.core.config import get_settings
        get_settings()
        return "config/.env loaded"

    def models() -> str:
        from asof.backend.models import Base
        return f"{len(Base.metadata.tables)} tables"

    def templates() -> str:
        from asof.frontend.templating import get_templates, load_page_content
        get_templates()
        return f"{len(load_page_content())} page sections"

    def application() -> str:
        from asof.backend.main import get_app
        return f"Title: {get_app().title}"

    check("YAML configuration", yaml_config)
    check("Secrets", secrets)
    check("Database models", models)
    check("Templates and page content", templates)
    check("FastAPI application", application)

    click.echo("Health Check Results:")
    click.echo("-" * 50)
    for name, passed, detail in checks:
        status = click.style("✓ PASS", fg="green") if passed else click.style("✗ FAIL", fg="red")
        click.echo(f"  {status}  {name}{f' ({detail})' if detail else ''}")
    click.echo("-" * 50)

    if all(passed for _, passed, _ in checks):
        click.echo(click.style("\nAll checks passed!", fg="green"))
    else:
        click.echo(click.style("\nSome checks failed. See details above.", fg="yellow"))
        sys.exit(1)


def show_config(logger) -> None:
    """Print every validated YAML section. Secrets are never printed."""
    from asof.backend.core.config import get_app_config

    try:
        app_config = get_app_config()
    except (FileNotFoundError, ValueError) as e:
        logger.error("Failed to load configuration", extra={"error": str(e)})
        _fail(f"Error loading configuration: {e}")

    sections = {
        "Application": app_config.application,
        "Database": app_config.database,
        "Logging": app_config.logging,
        "Features": app_config.features,
        "Storage": app_config.storage,
        "Mail": app_config.mail,
        "Content": app_config.content,
    }
    for title, section in sections.items():
        click.echo(f"\n{title}:")
        click.echo("-" * 40)
        _echo_mapping(section.model_dump(), indent=2)

    logger.info("Configuration displayed")


def _echo_mapping(values: dict, indent: int) -> None:
    for key, value in values.items():
        if isinstance(value, dict):
            click.echo(f"{' ' * indent}{key}:")
            _echo_mapping(value, indent + 2)
        else:
            click.echo(f"{' ' * indent}{key}: {value}")


def run_tests(logger, test_type: str, coverage: bool) -> None:
    logger.info("Running tests", extra={"type": test_type, "coverage": coverage})

    target = {"unit": "tests/unit", "integration": "tests/integration"}.get(test_type, "tests/")
    cmd = [sys.executable, "-m", "pytest", target, "-v"]
    if coverage:
        cmd.extend(["--cov=asof", "--cov-report=term-missing"])

    click.echo(f"Running: {' '.join(cmd)}\n")
    result = subprocess.run(cmd, cwd=PROJECT_ROOT)
    sys.exit(result.returncode)


def run_migrations(logger, migrate_action: str, revision: str, message: str | None) -> None:
    """Run Alembic against asof/backend/migrations."""
    logger.info("Running migrations", extra={"action": migrate_action, "revision": revision})

    if not ALEMBIC_INI.exists():
        _fail("Error: asof/backend/migrations/alembic.ini not found.")

    cmd = [sys.executable, "-m", "alembic", "-c", str(ALEMBIC_INI)]
    if migrate_action == "upgrade":
        cmd.extend(["upgrade", revision])
        click.echo(f"Upgrading database to revision: {revision}")
    elif migrate_action == "downgrade":
        cmd.extend(["downgrade", revision])
        click.echo(f"Downgrading database to revision: {revision}")
    elif migrate_action == "history":
        cmd.extend(["history", "--verbose"])
    elif migrate_action == "autogenerate":
        if not message:
            _fail("Error: --message/-m required for autogenerate.")
        cmd.extend(["revision", "--autogenerate", "-m", message])
        click.echo(f"Generating migration: {message}")
    else:
        cmd.append("current")

    click.echo()
    result = subprocess.run(cmd, cwd=PROJECT_ROOT)
    if result.returncode != 0:
        logger.error("Migration failed", extra={"exit_code": result.returncode})
        sys.exit(result.returncode)
    logger.info("Migration completed")


def run_seed(logger) -> None:
    """
    Create the initial users, categories, tags and sample posts.

    Seeded users get INITIAL_ADMIN_PASSWORD. When it is empty a random
    password is generated and printed once.
    """
    from asof.backend.core.config import get_settings
    from asof.backend.core.security import generate_password

    password = get_settings().initial_admin_password
    generated = not password
    if generated:
        password = generate_password()

    try:
        report = asyncio.run(_seed(password))
    except Exception as e:
        logger.error("Seed failed", extra={"error": str(e)})
        _fail(f"Error: seed failed: {e}")

    if not report.created_anything:
        click.echo("Nothing to seed: all users, categories, tags and posts already exist.")
        return

    click.echo(f"Users created: {', '.join(report.users) or '-'}")
    click.echo(f"Categories created: {', '.join(report.categories) or '-'}")
    click.echo(f"Tags created: {', '.join(report.tags) or '-'}")
    click.echo(f"Posts created: {len(report.posts)}")
    if generated and report.users:
        click.echo(click.style(f"\nGenerated password for the new users: {password}", fg="yellow"))
        click.echo("It is not stored anywhere. Change it after the first login.")


async def _seed(password: str):
    from asof.backend.core.database import dispose_engine, session_scope
    from asof.backend.services.seed import SeedService

    try:
        async with session_scope() as session:
            return await SeedService(session).run(password)
    finally:
        await dispose_engine()


def show_info(logger) -> None:
    from asof.backend.core.config import get_app_config

    try:
        application = get_app_config().application
    except (FileNotFoundError, ValueError) as e:
        logger.error("Failed to load application configuration", extra={"error": str(e)})
        _fail("Error: could not load application.yaml configuration.")

    click.echo(application.name)
    click.echo("=" * 40)
    click.echo(f"Version: {application.version}")
    click.echo(f"Environment: {application.environment}")
    click.echo(f"Description: {application.description}")
    click.echo()
    click.echo("Services (--service):")
    click.echo("  server     Web server (API, public site, admin)")
    click.echo("  worker     Background task worker")
    click.echo("  scheduler  Cron scheduler (scheduled posts, session cleanup)")
    click.echo("  migrate    Database migrations")
    click.echo("  seed       Initial users, categories, tags and posts")
    click.echo("  health     Check configuration and imports")
    click.echo("  config     Display configuration")
    click.echo("  test       Run test suite")
    click.echo("  info       Show this information")
    click.echo()
    click.echo("Lifecycle actions (--action, for long-running services):")
    click.echo("  start | stop | restart | status")


if __name__ == "__main__":
    main()
