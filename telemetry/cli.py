"""Command-line interface for the telemetry logger."""
from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from telemetry.acquisition.serial_source import IngestionState, available_ports
from telemetry.app import TelemetryLogger
from telemetry.config import Settings
from telemetry.errors import ExportError
from telemetry.io.export import load_export, summarize_export
from telemetry.store import Sample

logger = logging.getLogger(__name__)


# =============================================================================
# Logging setup
# =============================================================================


def setup_logging(verbose: bool, debug: bool) -> None:
    """Configure logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# =============================================================================
# Readout
# =============================================================================


def format_readout(latest: List[Optional[Sample]]) -> str:
    """One line with the most recent reading of every sensor."""
    cells = []
    for i, sample in enumerate(latest, start=1):
        if sample is None or sample.reading is None:
            cells.append(f"Sensor {i}: No data")
        else:
            cells.append(f"Sensor {i}: {sample.reading:6.3f}°C")
    return " | ".join(cells)


def choose_port(ports: List[str]) -> str:
    """Ask on stdin for one of ``ports`` (or any typed name)."""
    print("Available serial ports:")
    for i, name in enumerate(ports, start=1):
        print(f"  {i}. {name}")
    while True:
        answer = input("Select the serial port to read data from: ").strip()
        if answer.isdigit() and 1 <= int(answer) <= len(ports):
            return ports[int(answer) - 1]
        if answer:
            return answer


# =============================================================================
# Command handlers
# =============================================================================


def cmd_ports(_args: argparse.Namespace) -> int:
    """Handle 'ports' command."""
    ports = available_ports()
    if not ports:
        print("No serial ports found")
        return 1
    for name in ports:
        print(name)
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Handle 'run' command - handshake, ingest, autosave, live readout."""
    settings = Settings()
    config = settings.to_config(
        num_channels=args.channels,
        baud=args.baud,
        autosave_interval_s=args.interval,
        output_dir=args.output_dir,
        demo_samples=args.demo,
    )
    app = TelemetryLogger(config)
    app.start()

    try:
        port = args.port or settings.port or choose_port(available_ports())
        app.select_port(port)

        while not app.stop_event.wait(args.refresh):
            if app.ingestion.state is IngestionState.FAILED:
                print(f"Error: {app.ingestion.error}")
                return 1
            print(format_readout(app.store.latest()))
    except (KeyboardInterrupt, EOFError):
        print("\nStopping...")
    finally:
        app.stop()
        if args.save_on_exit:
            try:
                print(f"Data saved to {app.save_now()}")
            except ExportError as e:
                logger.error("Final save failed: %s", e)
    return 0


def cmd_summarize(args: argparse.Namespace) -> int:
    """Handle 'summarize' command."""
    df = load_export(args.file)
    print(f"{args.file}: {len(df)} rows")
    print(summarize_export(df).to_string())
    return 0


# =============================================================================
# Argument parsing
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Multi-channel serial telemetry logger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s ports                                  # List serial ports
    %(prog)s run --port /dev/ttyUSB0                # Log 8 channels, autosave every 60 s
    %(prog)s run --demo 100000 -o exports           # Pre-seed synthetic data
    %(prog)s summarize "data 2024-05-01 12-00-00.csv"

Settings may also come from TELEMETRY_* environment variables or a .env file.
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug output")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("ports", help="List available serial ports")

    run_parser = subparsers.add_parser("run", help="Start logging")
    run_parser.add_argument("--port", help="Serial port (prompted for when omitted)")
    run_parser.add_argument("--channels", type=int, metavar="N", help="Number of channels (default: 8)")
    run_parser.add_argument("--baud", type=int, help="Baud rate (default: 9600)")
    run_parser.add_argument("--interval", type=float, metavar="S", help="Autosave interval in seconds (default: 60)")
    run_parser.add_argument("-o", "--output-dir", type=Path, metavar="DIR", help="Directory for CSV exports")
    run_parser.add_argument("--demo", type=int, default=0, metavar="N",
                            help="Seed N synthetic samples per channel")
    run_parser.add_argument("--refresh", type=float, default=1.0, metavar="S",
                            help="Live readout period in seconds (default: 1)")
    run_parser.add_argument("--save-on-exit", action="store_true", help="Export once more when stopping")

    summarize_parser = subparsers.add_parser("summarize", help="Summarize an exported CSV file")
    summarize_parser.add_argument("file", type=Path)

    return parser


# =============================================================================
# Main entry point
# =============================================================================


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.debug)

    handlers = {
        "ports": cmd_ports,
        "run": cmd_run,
        "summarize": cmd_summarize,
    }
    return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
