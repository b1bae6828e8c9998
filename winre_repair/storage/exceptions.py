"""Custom exceptions for the WinRE repair procedure.

Every fatal condition of a repair run has its own exception type so the CLI
can turn it into the right exit code and the log shows what went wrong.

Exception Hierarchy:
    WinREError (base)
        ├── ElevationRequiredError (also a PermissionError)
        ├── ParseError
        ├── InvalidStateError
        └── ExternalToolError

    UserWarning
        └── CleanupWarning (logged only, never raised)

Usage:
    from winre_repair.storage.exceptions import InvalidStateError

    if not status.resizable:
        raise InvalidStateError("WinRE partition is not the last partition")
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class WinREError(Exception):
    """Base exception for all repair failures."""



class ElevationRequiredError(WinREError, PermissionError):
    """Process is not running with administrator rights."""

    def __init__(self, message: str = "Administrator privileges are required"):
        super().__init__(message)


class ParseError(WinREError):
    """reagentc status text could not be parsed."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class InvalidStateError(WinREError):
    """System state does not allow the repair to proceed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ExternalToolError(WinREError):
    """An external tool (reagentc, diskpart, powershell) reported a failure."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int | None,
        output: str = "",
        message: str | None = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        if message is None:
            tool = self.command[0] if self.command else "command"
            if returncode is None:
                message = f"{tool} did not complete"
            else:
                message = f"{tool} failed with exit code {returncode}"
        detail = output.strip()
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CleanupWarning(UserWarning):
    """Transient diskpart script could not be removed."""

    def __init__(self, path: Path, error: OSError):
        self.path = path
        self.error = error
        super().__init__(f"Could not remove transient script {path}: {error}")
