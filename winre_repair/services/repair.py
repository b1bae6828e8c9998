"""The WinRE partition repair procedure.

A run is strictly sequential:

    Start -> Checked-Privilege -> Inspected -> {NoOp-Done | Decided-Proceed}
          -> Scripted -> Disabled -> Partitioned -> Enabled -> Cleaned -> Done

Any step may fail, which moves the run to Failed and re-raises. Nothing is
retried and nothing is rolled back: if diskpart fails after reagentc
disabled WinRE, WinRE stays disabled and the log says where the run stopped.

Every run that is not a no-op recreates the partition, even on a system
that was already repaired.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from winre_repair.app.context import RunContext
from winre_repair.domain.models import (
    DiskLayout,
    OutcomeKind,
    RepairOutcome,
    RepairState,
    WinREStatus,
)
from winre_repair.logging import LoggerFactory, log_tool_output, operation_context
from winre_repair.services.tools import RecoveryTools
from winre_repair.storage import diskpart, reagent
from winre_repair.storage.exceptions import (
    ElevationRequiredError,
    InvalidStateError,
    WinREError,
)

if TYPE_CHECKING:
    from loguru import Logger


def _format_size(size_bytes: int | None) -> str:
    if size_bytes is None:
        return "unknown size"
    return f"{size_bytes / (1024 * 1024):.0f} MB"


class RepairRun:
    """One execution of the repair procedure."""

    def __init__(self, context: RunContext, tools: RecoveryTools, log: Logger):
        self.context = context
        self.tools = tools
        self.log = log
        self.state = RepairState.START
        self.status: WinREStatus | None = None
        self.layout: DiskLayout | None = None
        self.script: list[str] = []

    def _advance(self, state: RepairState) -> None:
        self.log.debug(f"State {self.state.value} -> {state.value}")
        self.state = state

    def check_privilege(self) -> None:
        if not self.tools.is_elevated():
            raise ElevationRequiredError(
                "Administrator privileges are required to run reagentc and diskpart"
            )
        self._advance(RepairState.CHECKED_PRIVILEGE)

    def inspect(self) -> WinREStatus:
        self.log.info("Querying WinRE status")
        text = self.tools.query_status()
        log_tool_output(self.log, "reagentc", text, level="DEBUG")
        status = reagent.parse_status(text)
        if status.has_location:
            self.layout = self.tools.get_disk_layout(status.disk_index)
            status = reagent.apply_layout(status, self.layout)
        self.status = status
        self._advance(RepairState.INSPECTED)
        if status.enabled:
            self.log.info(
                f"WinRE is enabled on {status.describe_location()} "
                f"({_format_size(status.current_size_bytes)})"
            )
        else:
            self.log.info("WinRE is disabled")
        return status

    def decide(self) -> bool:
        """Return True when the destructive path should run."""
        status = self.status
        if not status.enabled and not self.context.force:
            self.log.info("WinRE is not enabled; nothing to do")
            self._advance(RepairState.NOOP_DONE)
            return False
        if not status.has_location:
            raise InvalidStateError(
                "WinRE disk/partition could not be determined; "
                "force does not choose a target partition"
            )
        if not status.resizable:
            raise InvalidStateError(
                f"WinRE partition {status.partition_index} is not the last "
                f"partition on disk {status.disk_index}"
            )
        self._advance(RepairState.DECIDED_PROCEED)
        return True

    def build_script(self) -> list[str]:
        status = self.status
        preceding = self.layout.partition_before(status.partition_index)
        if preceding is None:
            raise InvalidStateError(
                f"No partition precedes WinRE partition {status.partition_index} "
                f"on disk {status.disk_index}"
            )
        self.log.info(
            f"Disk {status.disk_index} uses {self.layout.style.name}; "
            f"shrinking partition {preceding.number} by {diskpart.SHRINK_MB} MB"
        )
        self.script = diskpart.build_resize_script(
            status.disk_index,
            preceding.number,
            status.partition_index,
            self.layout.style,
        )
        for line in self.script:
            self.log.info(f"diskpart script: {line}")
        return self.script

    def mutate(self) -> None:
        script_path: Path = diskpart.write_script(self.script, self.context.script_dir)
        self._advance(RepairState.SCRIPTED)
        try:
            self.log.info("Disabling WinRE")
            self.tools.set_enabled(False)
            self._advance(RepairState.DISABLED)

            self.log.info("Running diskpart")
            self.tools.run_partition_script(script_path)
            self._advance(RepairState.PARTITIONED)

            self.log.info("Enabling WinRE")
            self.tools.set_enabled(True)
            self._advance(RepairState.ENABLED)
        finally:
            diskpart.remove_script(script_path)
        self._advance(RepairState.CLEANED)

    def verify(self) -> None:
        try:
            status = reagent.parse_status(self.tools.query_status())
        except WinREError as error:
            reason = " ".join(line.strip() for line in str(error).splitlines())
            self.log.warning(f"Could not verify WinRE status after repair: {reason}")
            return
        if status.enabled:
            self.log.info(f"WinRE re-enabled on {status.describe_location()}")
        else:
            self.log.warning("WinRE reports disabled after re-enabling")

    def execute(self) -> RepairOutcome:
        """Inspect, decide and repair; the privilege check must already have passed."""
        status = self.inspect()
        if not self.decide():
            return RepairOutcome(
                kind=OutcomeKind.NOOP,
                summary="WinRE is disabled; no changes were made",
                status=status,
            )

        self.build_script()
        if self.context.dry_run:
            self._advance(RepairState.DONE)
            return RepairOutcome(
                kind=OutcomeKind.DRY_RUN,
                summary=(
                    f"Dry run: WinRE partition {status.partition_index} on disk "
                    f"{status.disk_index} would be recreated"
                ),
                status=status,
                script=tuple(self.script),
            )

        self.mutate()
        self.verify()
        self._advance(RepairState.DONE)
        return RepairOutcome(
            kind=OutcomeKind.REPAIRED,
            summary=(
                f"WinRE partition {status.partition_index} on disk "
                f"{status.disk_index} recreated (was "
                f"{_format_size(status.current_size_bytes)}, preceding partition "
                f"shrunk by {diskpart.SHRINK_MB} MB)"
            ),
            status=status,
            script=tuple(self.script),
        )


def run_repair(context: RunContext, tools: RecoveryTools) -> RepairOutcome:
    """Inspect WinRE and recreate its partition when enabled or forced.

    Raises:
        ElevationRequiredError: Not running as administrator; nothing logged
            besides the failure and nothing changed
        ParseError: reagentc reports WinRE enabled without a parsable location
        InvalidStateError: Target partition unknown or not last on its disk
        ExternalToolError: reagentc, powershell or diskpart failed
    """
    log = LoggerFactory.for_repair(context.run_id)
    run = RepairRun(context, tools, log)
    try:
        run.check_privilege()
    except ElevationRequiredError as error:
        run.state = RepairState.FAILED
        log.error(f"{error}; no changes were made")
        raise

    with operation_context(
        "repair", job_id=context.run_id, force=context.force, dry_run=context.dry_run
    ) as log:
        run.log = log
        try:
            return run.execute()
        except Exception:
            log.error(f"Repair aborted in state {run.state.value}")
            run.state = RepairState.FAILED
            raise
