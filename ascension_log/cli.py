#!/usr/bin/env python3
"""
Ascension Log Parser CLI.

Command-line interface for parsing ascension logs and printing summaries.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import ParserConfig
from .exceptions import AscensionLogError
from .parser.batch import BatchLogParser
from .parser.log_parser import parse_log_file
from .services.reference_data import ReferenceDataService

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def print_summary(holder):
    """Print the summary of a parsed log."""
    summary = holder.log_summary

    print("\n" + "=" * 50)
    print(f"Ascension Log: {holder.log_name or 'unnamed'}")
    print("=" * 50)

    print(f"\nClass: {holder.character_class} | Path: {holder.ascension_path} | Mode: {holder.game_mode}")
    print(f"Days: {len(holder.day_changes)}")
    print(
        f"Turns: {summary.total_turns} "
        f"({summary.total_turns_combat} combat, {summary.total_turns_noncombat} noncombat, "
        f"{summary.total_turns_other} other)"
    )

    print(f"\nStat gains: {summary.total_stat_gains}")
    print(f"MP gains: {summary.total_mp_gains.total}")
    print(f"Meat: +{summary.total_meat_gain} / -{summary.total_meat_spent}")

    print("\n--- Levels ---")
    for level in summary.levels:
        print(f"  {level}")

    if summary.familiar_usage:
        print("\n--- Familiars ---")
        for familiar in summary.familiar_usage:
            print(f"  {familiar.name}: {familiar.turn_number} turns")

    if summary.all_consumables_used:
        print("\n--- Consumables ---")
        for consumable in summary.all_consumables_used:
            print(f"  {consumable}")

    if summary.skills_cast:
        print("\n--- Skills ---")
        for skill in summary.skills_cast:
            print(f"  {skill}")
        print(f"  Total MP used: {summary.total_mp_used}")

    if summary.semirares:
        print("\n--- Semirares ---")
        for semirare in summary.semirares:
            print(f"  {semirare}")

    print()


def cmd_parse(args, config):
    """Parse a log file and print its summary."""
    holder = parse_log_file(args.log_file, config)
    print_summary(holder)
    return 0


def cmd_turns(args, config):
    """Print the turn intervals of a log file."""
    holder = parse_log_file(args.log_file, config)

    if args.start is not None or args.end is not None:
        start = args.start if args.start is not None else 0
        end = args.end if args.end is not None else holder.last_turn_spent.turn_number
        holder = holder.sub_range(start, end)

    for interval in holder.turn_intervals_spent:
        print(f"  {interval}")
        if interval.pre_interval_comment:
            print(f"      {interval.pre_interval_comment}")
    return 0


def cmd_batch(args, config):
    """Parse every log file in a directory."""
    directory = Path(args.directory)
    if not directory.is_dir():
        print(f"Error: Directory not found: {directory}")
        return 1

    result = BatchLogParser(config).parse_directory(directory)

    print(f"\nParsed {len(result.holders)} logs")
    for name, holder in sorted(result.holders.items()):
        print(f"  {Path(name).name}: {holder.last_turn_spent.turn_number} turns")

    if result.has_failures:
        print(f"\n--- {len(result.failures)} Failures ---")
        for failure in result.failures:
            print(f"  {failure}")
        return 1
    return 0


def cmd_refresh_data(args, config):
    """Download the reference data tables."""
    data_dir = config.reference_data_dir or Path.home() / ".ascension_log"
    service = ReferenceDataService(data_dir)
    if not service.refresh(args.url):
        print("Failed to download reference data")
        return 1
    print(f"Reference data stored in {data_dir}")
    return 0


COMMANDS = {
    'parse': cmd_parse,
    'turns': cmd_turns,
    'batch': cmd_batch,
    'refresh-data': cmd_refresh_data,
}


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description='Ascension Log Parser',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging')
    parser.add_argument('--no-notes', action='store_true',
                        help='Do not attach log notes to turns')
    parser.add_argument('--encoding', type=str, default=None,
                        help='Log file encoding (platform default if omitted)')
    parser.add_argument('--data-dir', type=str, default=None,
                        help='Directory holding downloaded reference data')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Parse command
    parse_parser = subparsers.add_parser('parse', help='Parse a log and print its summary')
    parse_parser.add_argument('log_file', help='Path to the log file')

    # Turns command
    turns_parser = subparsers.add_parser('turns', help='List turn intervals')
    turns_parser.add_argument('log_file', help='Path to the log file')
    turns_parser.add_argument('--start', type=int, default=None,
                              help='First turn of the range')
    turns_parser.add_argument('--end', type=int, default=None,
                              help='Last turn of the range')

    # Batch command
    batch_parser = subparsers.add_parser('batch', help='Parse all logs in a directory')
    batch_parser.add_argument('directory', help='Directory of log files')
    batch_parser.add_argument('-w', '--workers', type=int, default=None,
                              help='Number of parallel workers')

    # Refresh data command
    refresh_parser = subparsers.add_parser('refresh-data', help='Download reference data')
    refresh_parser.add_argument('--url', required=True,
                                help='URL of the reference tables JSON file')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 0

    config = ParserConfig.from_args(args)
    try:
        return command(args, config)
    except AscensionLogError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
