"""Synchronous execution of external command-line tools."""

from __future__ import annotations

import subprocess
from typing import Sequence

from winre_repair.logging import LoggerFactory, log_tool_output
from winre_repair.storage.exceptions import ExternalToolError


log = LoggerFactory.for_tools()


def run_command(
    command: Sequence[str],
    timeout: float | None = None,
    check: bool = True,
    log_command: bool = True,
) -> subprocess.CompletedProcess:
    """Run a command and wait for it to finish.

    Raises:
        ExternalToolError: If the tool cannot be started, times out, or
            exits non-zero while ``check`` is set
    """
    command = list(command)
    if log_command:
        log.debug(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(
            command,
            text=True,
            capture_output=True,
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError as error:
        raise ExternalToolError(
            command, None, message=f"{command[0]} not found: {error}"
        ) from error
    except subprocess.TimeoutExpired as error:
        raise ExternalToolError(
            command,
            None,
            output=_decode(error.stdout),
            message=f"{command[0]} timed out after {timeout} seconds",
        ) from error

    log_tool_output(log, "stderr", result.stderr, level="DEBUG")
    if log_command:
        log.debug(f"Command completed with return code {result.returncode}")
    if check and result.returncode != 0:
        raise ExternalToolError(command, result.returncode, output=combined_output(result))
    return result


def combined_output(result: subprocess.CompletedProcess) -> str:
    stdout = (result.stdout or "").strip()
    stderr = (result.stderr or "").strip()
    return "\n".join(part for part in (stdout, stderr) if part)


def _decode(output) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output
