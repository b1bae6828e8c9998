"""
Pytest configuration and shared fixtures for winre-repair tests.

This module provides common fixtures and utilities used across all test modules.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from loguru import logger

from winre_repair.app.context import RunContext
from winre_repair.domain.models import DiskLayout, PartitionRecord, PartitionStyle
from winre_repair.logging import _add_severity
from winre_repair.storage.exceptions import ExternalToolError, InvalidStateError


MB = 1024 * 1024


# ==============================================================================
# reagentc Output Fixtures
# ==============================================================================


REAGENTC_ENABLED = """
Windows Recovery Environment (Windows RE) and system reset configuration
Information:

    Windows RE status:         Enabled
    Windows RE location:       \\\\?\\GLOBALROOT\\device\\harddisk0\\partition4\\Recovery\\WindowsRE
    Boot Configuration Data (BCD) identifier: 6f2d7c1e-8c9a-11ee-a1b2-c3d4e5f60718
    Recovery image location:
    Recovery image index:      0
    Custom image location:
    Custom image index:        0

REAGENTC.EXE: Operation Successful.
"""

REAGENTC_DISABLED = """
Windows Recovery Environment (Windows RE) and system reset configuration
Information:

    Windows RE status:         Disabled
    Windows RE location:
    Boot Configuration Data (BCD) identifier: 00000000-0000-0000-0000-000000000000
    Recovery image location:
    Recovery image index:      0
    Custom image location:
    Custom image index:        0

REAGENTC.EXE: Operation Successful.
"""

REAGENTC_ENABLED_NO_LOCATION = """
    Windows RE status:         Enabled
    Windows RE location:
REAGENTC.EXE: Operation Successful.
"""


@pytest.fixture
def reagentc_enabled() -> str:
    """Fixture providing reagentc /info output with WinRE on disk 0 partition 4."""
    return REAGENTC_ENABLED


@pytest.fixture
def reagentc_disabled() -> str:
    """Fixture providing reagentc /info output with WinRE disabled."""
    return REAGENTC_DISABLED


# ==============================================================================
# Disk Layout Fixtures
# ==============================================================================


def make_layout(
    style: PartitionStyle = PartitionStyle.GPT,
    disk_index: int = 0,
    winre_last: bool = True,
) -> DiskLayout:
    """Typical Windows disk: EFI, MSR, C:, WinRE (optionally followed by data)."""
    partitions = [
        PartitionRecord(number=1, size_bytes=100 * MB, offset=1 * MB),
        PartitionRecord(number=2, size_bytes=16 * MB, offset=101 * MB),
        PartitionRecord(number=3, size_bytes=238_000 * MB, offset=117 * MB),
        PartitionRecord(number=4, size_bytes=530 * MB, offset=238_117 * MB),
    ]
    if not winre_last:
        partitions.append(
            PartitionRecord(number=5, size_bytes=10_000 * MB, offset=238_647 * MB)
        )
    return DiskLayout(index=disk_index, style=style, partitions=tuple(partitions))


@pytest.fixture
def gpt_layout() -> DiskLayout:
    return make_layout(PartitionStyle.GPT)


@pytest.fixture
def mbr_layout() -> DiskLayout:
    return make_layout(PartitionStyle.MBR)


@pytest.fixture
def get_disk_json() -> str:
    """Fixture providing Get-Disk JSON output for a GPT disk."""
    return json.dumps({"Number": 0, "PartitionStyle": "GPT"})


@pytest.fixture
def get_partition_json() -> str:
    """Fixture providing Get-Partition JSON output (unordered, as PowerShell may emit)."""
    return json.dumps(
        [
            {"PartitionNumber": 4, "Offset": 238_117 * MB, "Size": 530 * MB},
            {"PartitionNumber": 1, "Offset": 1 * MB, "Size": 100 * MB},
            {"PartitionNumber": 3, "Offset": 117 * MB, "Size": 238_000 * MB},
            {"PartitionNumber": 2, "Offset": 101 * MB, "Size": 16 * MB},
        ]
    )


# ==============================================================================
# Tool Fakes
# ==============================================================================


class FakeRecoveryTools:
    """RecoveryTools fake that records calls and returns scripted responses."""

    def __init__(
        self,
        status_text: str = REAGENTC_ENABLED,
        layout: Optional[DiskLayout] = None,
        elevated: bool = True,
        verify_text: Optional[str] = None,
        fail_on: tuple = (),
    ):
        self.status_texts = [status_text]
        self.verify_text = verify_text if verify_text is not None else status_text
        self.layout = layout if layout is not None else make_layout()
        self.elevated = elevated
        self.fail_on = set(fail_on)
        self.calls: List[tuple] = []
        self.scripts: List[List[str]] = []
        self.script_paths: List[Path] = []

    def _maybe_fail(self, name: str, command: List[str]) -> None:
        if name in self.fail_on:
            raise ExternalToolError(command, 1, output=f"{name} failed")

    def is_elevated(self) -> bool:
        self.calls.append(("is_elevated",))
        return self.elevated

    def query_status(self) -> str:
        self.calls.append(("query_status",))
        self._maybe_fail("query_status", ["reagentc", "/info"])
        if self.status_texts:
            return self.status_texts.pop(0)
        return self.verify_text

    def set_enabled(self, enabled: bool) -> str:
        self.calls.append(("set_enabled", enabled))
        verb = "/enable" if enabled else "/disable"
        self._maybe_fail(f"set_enabled_{enabled}", ["reagentc", verb])
        return "REAGENTC.EXE: Operation Successful."

    def get_disk_layout(self, disk_index: int) -> DiskLayout:
        self.calls.append(("get_disk_layout", disk_index))
        if self.layout.index != disk_index:
            raise InvalidStateError(f"Disk {disk_index} was not found")
        return self.layout

    def run_partition_script(self, script_path: Path) -> str:
        self.calls.append(("run_partition_script",))
        self.script_paths.append(script_path)
        self.scripts.append(script_path.read_text(encoding="utf-8").splitlines())
        self._maybe_fail("run_partition_script", ["diskpart", "/s", str(script_path)])
        return "DiskPart successfully formatted the volume."

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_tools() -> FakeRecoveryTools:
    return FakeRecoveryTools()


@pytest.fixture
def run_context(tmp_path) -> RunContext:
    """Fixture providing a RunContext writing scripts under tmp_path."""
    return RunContext(
        log_path=tmp_path / "logs" / "run.log",
        script_dir=tmp_path / "scripts",
        run_id="repair-test",
    )


# ==============================================================================
# Logging Fixtures
# ==============================================================================


@pytest.fixture
def log_records() -> List[Dict[str, Any]]:
    """
    Fixture capturing loguru records as dicts with message and severity.

    Returns:
        List filled as the code under test logs.
    """
    records: List[Dict[str, Any]] = []

    def sink(message):
        record = message.record
        records.append(
            {
                "message": record["message"],
                "severity": record["extra"].get("severity"),
                "level": record["level"].name,
            }
        )

    logger.remove()
    logger.configure(patcher=_add_severity)
    handler_id = logger.add(sink, level="DEBUG")
    yield records
    try:
        logger.remove(handler_id)
    except ValueError:
        pass


@pytest.fixture
def mock_subprocess_run(mocker):
    """
    Fixture providing a mock for subprocess.run.

    Returns:
        Mock object for subprocess.run
    """
    return mocker.patch("subprocess.run")
