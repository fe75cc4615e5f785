#!/usr/bin/env python3
"""
Zabbix Server Installer
--------------------------------------------------

Installs Zabbix server, frontend and agent2 with PostgreSQL and Nginx on
Ubuntu. Every step runs with its output sent to a log file while a live
checklist shows progress:

- Pending, running, succeeded and failed steps at a glance
- Steps marked as allowed to fail do not stop the run
- On a fatal failure the full log is printed for inspection

Usage:
  zabbix-setup [--ui live|plain] [--log-file PATH] [--list-steps]
"""

import functools
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import click
from rich.console import Console, Group
from rich.logging import RichHandler
from rich.text import Text
from rich.traceback import install as install_rich_traceback

from zabbix_setup import __version__
from zabbix_setup.checklist import ChecklistView, LiveChecklistView, PlainChecklistView
from zabbix_setup.config import UI_MODES, Config
from zabbix_setup.errors import ResourceError, TerminalUnavailableError
from zabbix_setup.logsink import LogSink
from zabbix_setup.plan import (
    PlannedStep,
    build_plan,
    build_registry,
    detect_host_address,
    generate_password,
    plan_table,
    render_summary,
)
from zabbix_setup.runner import EXIT_ABORTED, Run
from zabbix_setup.terminal import RichTerminal
from zabbix_setup.theme import (
    NordColors,
    console,
    create_header,
    print_error,
    print_success,
    print_warning,
)

# Install rich traceback handler for better error reporting
install_rich_traceback(show_locals=True)

LOGGER_NAME = "zabbix_setup"
EXIT_INTERRUPTED = 130


# ----------------------------------------------------------------
# Logger Setup
# ----------------------------------------------------------------
def setup_logger(
    log_file: Union[str, Path],
    target: Optional[Console] = None,
    debug: bool = False,
) -> logging.Logger:
    """
    Set up and configure the logger.

    The file handler writes into the run log. A console handler is only
    attached when ``target`` is given, since the live checklist owns the
    terminal while steps run.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    close_logger(logger)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S"
        )
    )
    logger.addHandler(file_handler)

    if target is not None:
        console_handler = RichHandler(console=target, rich_tracebacks=True)
        console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
        logger.addHandler(console_handler)

    return logger


def close_logger(logger: logging.Logger) -> None:
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()


# ----------------------------------------------------------------
# Signal Handling
# ----------------------------------------------------------------
def signal_handler(
    sig: int,
    frame: Any,
    view: Optional[ChecklistView] = None,
    target: Optional[Console] = None,
) -> None:
    """Exit with 128 + signal number, leaving the log as it stands."""
    sig_name = signal.Signals(sig).name
    if view is not None:
        view.park_cursor()
        (target or console).print()
    print_warning(f"Process interrupted by {sig_name}", target)
    logging.getLogger(LOGGER_NAME).error(f"Run interrupted by {sig_name}")
    sys.exit(128 + sig)


def install_signal_handlers(
    view: Optional[ChecklistView] = None, target: Optional[Console] = None
) -> None:
    """Route SIGTERM and SIGHUP to signal_handler, parking ``view`` first."""
    handler = functools.partial(signal_handler, view=view, target=target)
    for sig in (signal.SIGTERM, signal.SIGHUP):
        signal.signal(sig, handler)


# ----------------------------------------------------------------
# Checklist Presentation
# ----------------------------------------------------------------
def intro_renderable(config: Config, log_path: Path, password: str) -> Group:
    """Header plus the lines printed above the checklist."""
    return Group(
        create_header(),
        Text(
            "Starting Zabbix Server "
            f"{config.ZABBIX_VERSION} installation with PostgreSQL "
            f"{config.POSTGRESQL_VERSION} and Nginx on Ubuntu...",
            style=f"bold {NordColors.FROST_2}",
        ),
        Text(
            f"Detailed installation progress and logs are being written to: {log_path}",
            style=NordColors.SNOW_STORM_1,
        ),
        Text(
            f"Generated Zabbix database password: {password}",
            style=NordColors.YELLOW,
        ),
        Text(""),
    )


def open_checklist(
    mode: str, target: Console, intro: Group, step_count: int
) -> ChecklistView:
    """
    Print the intro and return the view the checklist is drawn with.

    ``auto`` picks the live view when the output is an interactive terminal
    tall enough for the intro and every step, and the plain view otherwise.

    Raises:
        TerminalUnavailableError: If ``live`` was requested but cannot be used
    """
    surface = RichTerminal(target)
    if mode == "plain" or (mode == "auto" and not surface.is_interactive):
        target.print(intro)
        return PlainChecklistView(target)

    if not surface.is_interactive:
        raise TerminalUnavailableError(
            "Output is not an interactive terminal; use --ui plain"
        )

    top_row = len(target.render_lines(intro, pad=False))
    if top_row + step_count >= target.size.height:
        if mode == "live":
            raise TerminalUnavailableError(
                f"Terminal is {target.size.height} rows high, the checklist needs "
                f"{top_row + step_count + 1}; use --ui plain"
            )
        target.print(intro)
        return PlainChecklistView(target)

    target.clear()
    target.print(intro)
    return LiveChecklistView(surface, top_row=top_row)


# ----------------------------------------------------------------
# Installation
# ----------------------------------------------------------------
def install(
    config: Config,
    plan: Sequence[PlannedStep],
    password: str,
    target: Console = console,
    debug: bool = False,
) -> int:
    """
    Execute ``plan`` and report the outcome.

    Returns:
        Process exit code
    """
    try:
        sink = LogSink.open(config.LOG_FILE)
    except ResourceError as e:
        print_error(str(e), target)
        return EXIT_ABORTED

    with sink:
        intro = intro_renderable(config, sink.path, password)
        try:
            view = open_checklist(config.UI_MODE, target, intro, len(plan))
        except TerminalUnavailableError as e:
            print_error(str(e), target)
            return EXIT_ABORTED

        install_signal_handlers(view, target)
        plain = isinstance(view, PlainChecklistView)
        logger = setup_logger(sink.path, target if plain else None, debug)
        logger.info(f"zabbix-setup {__version__}, log file {sink.path}")
        sink.note(f"ZABBIX_PASSWORD: {password}")

        registry = build_registry(plan, view)
        run = Run(
            registry,
            sink,
            target,
            treat_allowed_failure_as_process_failure=(
                config.TREAT_ALLOWED_FAILURE_AS_PROCESS_FAILURE
            ),
        )
        try:
            report = run.execute()
        except KeyboardInterrupt:
            view.park_cursor()
            target.print()
            print_warning("Process interrupted by user.", target)
            sink.note("Run interrupted by user")
            return EXIT_INTERRUPTED
        finally:
            close_logger(logger)

        if report.aborted:
            return report.exit_code

        target.print()
        print_success(f"All {len(registry)} steps processed.", target)
        for result in report.allowed_failures:
            print_warning(
                f"{result.label} failed but is allowed to fail. "
                f"See {sink.path} for details.",
                target,
            )
        target.print(render_summary(config, password, detect_host_address()))
        return report.exit_code


# ----------------------------------------------------------------
# Main CLI Entry Point with Click
# ----------------------------------------------------------------
@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Run log path (default: /tmp/zabbix_install_<timestamp>.log)",
)
@click.option(
    "--ui",
    "ui_mode",
    type=click.Choice(UI_MODES),
    default=None,
    help="Checklist style: live in-place redraw, plain sequential lines, or auto",
)
@click.option("--timezone", default=None, help="PHP date.timezone for the frontend")
@click.option("--db-name", default=None, help="Zabbix database name")
@click.option("--db-user", default=None, help="Zabbix database user")
@click.option("--no-sudo", is_flag=True, help="Run commands without sudo (already root)")
@click.option(
    "--strict-exit",
    is_flag=True,
    help="Exit with status 2 when a step that is allowed to fail failed",
)
@click.option("--list-steps", is_flag=True, help="Show the installation steps and exit")
@click.option("--debug", is_flag=True, help="Show debug logging in plain mode")
@click.version_option(__version__, prog_name="zabbix-setup")
def main(
    log_file: Optional[str],
    ui_mode: Optional[str],
    timezone: Optional[str],
    db_name: Optional[str],
    db_user: Optional[str],
    no_sudo: bool,
    strict_exit: bool,
    list_steps: bool,
    debug: bool,
) -> None:
    """Install Zabbix server with PostgreSQL and Nginx, step by step."""
    try:
        config = Config.from_env(
            LOG_FILE=log_file,
            UI_MODE=ui_mode,
            TIMEZONE=timezone,
            DB_NAME=db_name,
            DB_USER=db_user,
            USE_SUDO=False if no_sudo else None,
            TREAT_ALLOWED_FAILURE_AS_PROCESS_FAILURE=True if strict_exit else None,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    password = generate_password(config.PASSWORD_LENGTH, config.PASSWORD_ALPHABET)
    plan = build_plan(config, password)

    if list_steps:
        console.print(plan_table(plan, mask=password))
        sys.exit(0)

    install_signal_handlers()
    try:
        exit_code = install(config, plan, password, console, debug)
    except KeyboardInterrupt:
        print_warning("\nProcess interrupted by user.")
        sys.exit(EXIT_INTERRUPTED)
    except ResourceError as e:
        print_error(str(e))
        sys.exit(EXIT_ABORTED)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        console.print_exception()
        sys.exit(EXIT_ABORTED)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
