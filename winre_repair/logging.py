from __future__ import annotations

import sys
import time
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

LOG_FORMAT = "[{time:YYYY-MM-DD HH:mm:ss}] [{extra[severity]}] {message}"
LOG_FILE_PREFIX = "winre-repair"

# loguru level name -> severity written to the run log
_SEVERITY_NAMES = {
    "TRACE": "Debug",
    "DEBUG": "Debug",
    "INFO": "Info",
    "SUCCESS": "Info",
    "WARNING": "Warning",
    "ERROR": "Error",
    "CRITICAL": "Error",
}


def _add_severity(record) -> None:
    """Patcher: expose the Info/Warning/Error severity as an extra field."""
    record["extra"]["severity"] = _SEVERITY_NAMES.get(
        record["level"].name, record["level"].name.capitalize()
    )


def build_log_path(
    log_dir: Path, started_at: datetime, run_id: str | None = None
) -> Path:
    """Per-run log file path, stamped with the run start time.

    The trailing segment of ``run_id`` is appended so two runs started within
    the same second never share a file.
    """
    stamp = started_at.strftime("%Y%m%d-%H%M%S")
    if run_id:
        stamp = f"{stamp}-{run_id.rsplit('-', 1)[-1]}"
    return log_dir / f"{LOG_FILE_PREFIX}-{stamp}.log"


def setup_logging(
    log_path: Path | None,
    *,
    debug: bool = False,
    console: bool = True,
) -> Logger:
    """
    Setup logging for one repair run.

    Sinks:
    - Run log file: append-only, one file per run (skipped when log_path is None)
    - Console (stdout): mirror of the run log

    Args:
        log_path: File receiving the run log; parent directories are created
        debug: Include Debug severity (commands executed, state transitions)
        console: Mirror the run log to stdout
    """
    logger.remove()
    logger.configure(
        extra={"job_id": "-", "tags": [], "source": "APP", "severity": "Info"},
        patcher=_add_severity,
    )

    level = "DEBUG" if debug else "INFO"

    if console:
        logger.add(
            sys.stdout,
            level=level,
            backtrace=False,
            diagnose=False,
            colorize=False,
            format=LOG_FORMAT,
        )

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            level=level,
            mode="a",
            encoding="utf-8",
            backtrace=debug,
            diagnose=False,
            format=LOG_FORMAT,
        )

    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        job_id: Run identifier
        tags: Tags for filtering (e.g., ["repair", "diskpart"])
        source: Source component (e.g., "repair", "tools")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if job_id is not None:
        extras["job_id"] = job_id
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


def log_tool_output(log: Logger, tool: str, output: str, level: str = "INFO") -> None:
    """Log external tool output verbatim, one log line per output line."""
    for line in (output or "").splitlines():
        if line.strip():
            log.log(level, f"{tool}: {line.rstrip()}")


@contextmanager
def operation_context(operation: str, job_id: str | None = None, **details):
    """
    Context manager for tracking an operation with automatic timing.

    Logs operation start, completion and failure with duration.

    Args:
        operation: Operation name (e.g., "repair")
        job_id: Run identifier; generated when omitted
        **details: Operation-specific details to log

    Yields:
        Logger bound with job_id and operation context

    Example:
        with operation_context("repair", force=False) as log:
            log.debug("Querying WinRE status")
    """
    if job_id is None:
        job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.monotonic()
        log = logger.bind(source=operation, job_id=job_id, tags=[operation])

        log.info(f"{operation.capitalize()} started")

        try:
            yield log
            duration = time.monotonic() - start_time
            log.bind(duration_seconds=round(duration, 2)).success(
                f"{operation.capitalize()} completed in {duration:.2f}s"
            )
        except Exception as e:
            duration = time.monotonic() - start_time
            reason = " ".join(line.strip() for line in str(e).splitlines())
            log.bind(
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            ).error(
                f"{operation.capitalize()} failed after {duration:.2f}s: "
                f"{type(e).__name__}: {reason}"
            )
            raise


class LoggerFactory:
    """
    Factory for creating domain-specific loggers with automatic context.
    """

    @staticmethod
    def for_repair(job_id: str | None = None) -> Logger:
        """Logger for the repair procedure."""
        if job_id is None:
            job_id = f"repair-{uuid.uuid4().hex[:8]}"
        return get_logger(job_id=job_id, tags=["repair", "winre"], source="repair")

    @staticmethod
    def for_tools() -> Logger:
        """Logger for reagentc, diskpart and powershell invocations."""
        return get_logger(tags=["tools", "command"], source="tools")

    @staticmethod
    def for_system() -> Logger:
        """Logger for startup, configuration and exit handling."""
        return get_logger(tags=["system"], source="system")
