"""Centralized logging configuration for routerctl.

The CLI calls configure_logging() once before dispatching a command.
Diagnostics go to stderr so command output on stdout stays clean.

Logging Levels:
- DEBUG: systemctl invocations, settings file resolution
- INFO: Unit file writes and state changes
- WARNING: Best-effort steps that failed (e.g., stop during uninstall)
- ERROR: Failures that abort a command
"""

import logging
import os

ENV_VAR = "ROUTERCTL_LOG_LEVEL"

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ComponentFormatter(logging.Formatter):
    """Formatter that extracts component name from logger path.

    Converts full module paths to short component names:
    - routerctl.service.controller -> service
    - routerctl.config.loader -> config
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = record.name.split(".")
        if len(parts) >= 2 and parts[0] == "routerctl":
            record.component = parts[1]
        else:
            record.component = parts[0]
        return super().format(record)


def resolve_level(level: str | None = None, verbosity: int = 0) -> str:
    """Pick the effective log level.

    Resolution order:
    1. Explicit level argument
    2. -v flags (one for INFO, two or more for DEBUG)
    3. ROUTERCTL_LOG_LEVEL environment variable
    4. WARNING
    """
    if level is None:
        if verbosity >= 2:
            level = "DEBUG"
        elif verbosity == 1:
            level = "INFO"
        else:
            level = os.environ.get(ENV_VAR, "WARNING")
    level = level.upper()
    return level if level in LEVELS else "WARNING"


def configure_logging(
    level: str | None = None,
    verbosity: int = 0,
    use_rich: bool = False,
) -> None:
    """Configure logging for routerctl.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). If None, derived
            from verbosity and the ROUTERCTL_LOG_LEVEL env var.
        verbosity: Number of -v flags given on the command line.
        use_rich: Use Rich handler for colorful output on a terminal.
    """
    log_level = getattr(logging, resolve_level(level, verbosity))

    if use_rich:
        from rich.console import Console
        from rich.logging import RichHandler

        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=False,
            show_path=False,
            show_time=False,
            markup=False,
        )
        handler.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(
            ComponentFormatter(
                "%(asctime)s | %(levelname)-8s | %(component)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    logging.basicConfig(
        level=log_level,
        handlers=[handler],
        force=True,
    )
