import argparse
import traceback
from dataclasses import replace
from pathlib import Path

from loguru import logger

from winre_repair.__version__ import __version__
from winre_repair.app.context import RunContext
from winre_repair.config.settings import load_settings
from winre_repair.logging import LoggerFactory, build_log_path, setup_logging
from winre_repair.services.repair import run_repair
from winre_repair.services.tools import WindowsRecoveryTools
from winre_repair.storage.exceptions import ElevationRequiredError, WinREError

EXIT_OK = 0
EXIT_FAILURE = 1
# Same value as Windows ERROR_ACCESS_DENIED
EXIT_ACCESS_DENIED = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="winre-repair",
        description="Resize and recreate the Windows Recovery Environment partition",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Attempt the repair even when WinRE reports disabled",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Inspect and print the diskpart script without changing anything",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-dir", type=Path, help="Directory for the run log")
    parser.add_argument("--settings", type=Path, help="Path to a settings JSON file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None, tools=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.settings)

    context = RunContext(force=args.force, dry_run=args.dry_run, script_dir=settings.script_dir)
    log_dir = args.log_dir or settings.log_dir
    log_path = build_log_path(log_dir, context.now(), context.run_id)
    context = replace(context, log_path=log_path)
    setup_logging(log_path, debug=args.debug)
    log = LoggerFactory.for_system()

    if tools is None:
        tools = WindowsRecoveryTools(settings)

    exit_code = EXIT_FAILURE
    try:
        outcome = run_repair(context, tools)
    except ElevationRequiredError:
        print("Run this tool from an elevated (Administrator) prompt.")
        exit_code = EXIT_ACCESS_DENIED
    except WinREError as error:
        print(f"Repair failed: {error}")
    except Exception as error:
        reason = " ".join(line.strip() for line in str(error).splitlines())
        log.error(f"Unexpected error during repair: {type(error).__name__}: {reason}")
        if args.debug:
            # Traceback goes to stderr only; the run log keeps one line per entry
            traceback.print_exc()
        print("Repair failed with an unexpected error.")
    else:
        print(outcome.summary)
        exit_code = EXIT_OK
    finally:
        logger.complete()
        logger.remove()
        print(f"Log file: {log_path}")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
