"""Command-line interface for headless simulator runs."""

import argparse
import sys
from pathlib import Path
from typing import Optional

from .config_loader import ConfigurationError, create_example_config, load_config
from .interfaces import SimulationError
from .logging_config import setup_logging
from .record_store import RecordStore
from .simulation.models import MeasurementRecord, Scenario
from .simulation.simulator_engine import SimulatorEngine


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="Run simulated insulation diagnostic tests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Polarization index test at 5 kV with a random outcome
  python -m diagsim.cli --mode spot --voltage 5000

  # Step voltage test with a forced outcome, saved to the record directory
  python -m diagsim.cli --mode step --voltage 5000 --scenario dangerous --save

  # List stored records
  python -m diagsim.cli --list
        """
    )

    action_group = parser.add_mutually_exclusive_group(required=True)
    action_group.add_argument(
        '--mode',
        help='Test mode to run (spot, discharge, step, pd)'
    )
    action_group.add_argument(
        '--list',
        action='store_true',
        help='List stored measurement records and exit'
    )
    action_group.add_argument(
        '--example-config',
        type=Path,
        metavar='PATH',
        help='Write an example configuration file and exit'
    )

    parser.add_argument(
        '--voltage',
        type=int,
        default=5000,
        help='Test voltage in volts (default: 5000)'
    )

    parser.add_argument(
        '--scenario',
        choices=[s.value for s in Scenario],
        help='Force the hidden outcome instead of drawing one'
    )

    parser.add_argument(
        '--seed',
        type=int,
        help='Seed for scenario draws and noise (overrides config)'
    )

    parser.add_argument(
        '--no-noise',
        action='store_true',
        help='Disable measurement noise'
    )

    parser.add_argument(
        '--save',
        action='store_true',
        help='Save the resulting record to the record directory'
    )

    parser.add_argument(
        '--config',
        type=Path,
        help='Path to configuration file (default: config/config.yml)'
    )

    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress output messages'
    )

    return parser


def format_value(value: Optional[float], unit: str) -> str:
    """Format an optional reading value for display."""
    if value is None:
        return "N/A"
    return f"{value:.3g} {unit}"


def print_record(record: MeasurementRecord) -> None:
    """Print a human-readable summary of a record."""
    print(f"Mode:           {record.mode.value}")
    print(f"Test voltage:   {record.target_voltage:.0f} V")
    print(f"Elapsed time:   {record.elapsed_time:.0f} s ({record.end_reason})")
    print(f"Resistance:     {format_value(record.resistance, 'MΩ')}")
    print(f"Current:        {format_value(record.current, 'µA')}")
    print(f"Capacitance:    {format_value(record.capacitance, 'nF')}")

    indices = record.indices.defined()
    if indices:
        print("Indices:")
        for name, value in indices.items():
            print(f"  {name:<28} {value:.3f}")

    print(f"Classification: {record.classification.label}")
    print(f"  {record.classification.explanation}")
    for name, label in record.classification.field_assessments.items():
        print(f"  {name}: {label}")


def list_records(store: RecordStore, quiet: bool = False) -> None:
    """List stored records."""
    records = store.list_records()

    if not records:
        if not quiet:
            print("No records found.")
        return

    if not quiet:
        print(f"Found {len(records)} record(s):\n")
        print(f"{'Record ID':<38} {'Mode':<10} {'Voltage':<8} {'Created':<20} {'Classification':<18}")
        print("-" * 96)

        for record in records:
            created = record.created_at.isoformat()[:19]
            print(f"{record.record_id:<38} {record.mode.value:<10} {record.target_voltage:<8.0f} "
                  f"{created:<20} {record.classification.label:<18}")


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        if args.example_config:
            create_example_config(args.example_config)
            if not args.quiet:
                print(f"Wrote example configuration to {args.example_config}")
            return 0

        config = load_config(args.config)
        if args.seed is not None:
            config.simulation.seed = args.seed
        if args.no_noise:
            config.simulation.noise_enabled = False

        store = RecordStore(config.paths.record_dir)

        if args.list:
            list_records(store, args.quiet)
            return 0

        setup_logging(config)
        engine = SimulatorEngine(config.simulation)
        engine.start(args.mode, args.voltage, args.scenario)
        record = engine.run_to_completion()

        if record is None:
            print("Run produced no record", file=sys.stderr)
            return 1

        if not args.quiet:
            print_record(record)

        if args.save:
            path = store.save(record)
            if not args.quiet:
                print(f"\nSaved record to {path}")

    except KeyboardInterrupt:
        if not args.quiet:
            print("\nOperation cancelled by user")
        return 130

    except (ConfigurationError, SimulationError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
