#!/usr/bin/env python
"""
Command-line interface for the OSM history importer

Usage:
    python cli.py import --input history.json --output records.json
    python cli.py lookup --input history.json --way 42 --at 2012-05-01T00:00:00Z
"""

import os
import sys
import json
import argparse

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from loguru import logger
from shapely.geometry import shape

from history_importer.config import load_config_from_env
from history_importer.importer import HistoryHandler, HistoryParser
from history_importer.importer.parser import parse_timestamp


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def build_config(args):
    """Environment/.env settings, overridden by command line flags"""
    config = load_config_from_env(args.env_file)
    if getattr(args, "update", False):
        config.mode = "update"
    if getattr(args, "keep_latlng", False):
        config.geometry.keep_latlng = True
    if getattr(args, "debug", False):
        config.geometry.debug = True
    if getattr(args, "show_errors", False):
        config.geometry.show_errors = True
    return config


def cmd_import(args):
    """Import a history file and write all version records as JSON"""
    setup_logging(args.verbose or args.debug)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        config = build_config(args)
        entities = HistoryParser.load(args.input)
        handler = HistoryHandler(config=config)
        result = handler.process(entities)

        output_dir = os.path.dirname(args.output)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(result.model_dump_json(indent=2))

        logger.info(f"✓ Written: {args.output}")
        if args.summary:
            print(json.dumps(result.summary(), indent=2))
        return 0

    except Exception as e:
        logger.error(f"Import failed: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def cmd_lookup(args):
    """Print the geometry of a way at one point in time"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        config = build_config(args)
        at = parse_timestamp(args.at)
        result = HistoryHandler(config=config).process(HistoryParser.load(args.input))

        for record in result.ways:
            if record.id != args.way:
                continue
            if record.valid_from > at or (record.valid_to is not None and record.valid_to <= at):
                continue
            if record.geometry is None:
                logger.warning(f"way #{args.way} v{record.version} has no geometry at {at} ({record.status})")
                return 1
            geom = shape(record.geometry.model_dump())
            print(json.dumps({
                "id": record.id,
                "version": record.version,
                "minor": record.minor,
                "valid_from": record.valid_from.isoformat(),
                "valid_to": record.valid_to.isoformat() if record.valid_to else None,
                "srid": record.srid,
                "wkt": geom.wkt,
            }, indent=2))
            return 0

        logger.error(f"way #{args.way} did not exist at {at}")
        return 1

    except Exception as e:
        logger.error(f"Lookup failed: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="OSM history importer CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Import a history file:
    python cli.py import --input history.json --output records.json

  Show a way as it was at a point in time:
    python cli.py lookup --input history.json --way 42 --at 2012-05-01T00:00:00Z
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--env-file", help="Path of a .env file with HISTORY_IMPORTER_* settings")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    geometry_args = argparse.ArgumentParser(add_help=False)
    geometry_args.add_argument("--input", "-i", required=True, help="Input OSM-JSON history file")
    geometry_args.add_argument("--keep-latlng", action="store_true", help="Do not reproject to mercator")
    geometry_args.add_argument("--debug", action="store_true", help="Trace every resolved node")
    geometry_args.add_argument("--show-errors", action="store_true", help="Log why nodes and ways were skipped")
    geometry_args.add_argument("--update", action="store_true", help="Use the update-mode geometry builder")

    # Import command
    import_parser = subparsers.add_parser("import", parents=[geometry_args], help="Import a history file")
    import_parser.add_argument("--output", "-o", required=True, help="Output JSON file")
    import_parser.add_argument("--summary", "-s", action="store_true", help="Print counters to stdout")
    import_parser.set_defaults(func=cmd_import)

    # Lookup command
    lookup_parser = subparsers.add_parser("lookup", parents=[geometry_args], help="Show a way at a point in time")
    lookup_parser.add_argument("--way", "-w", type=int, required=True, help="Way id")
    lookup_parser.add_argument("--at", "-t", required=True, help="ISO-8601 timestamp")
    lookup_parser.set_defaults(func=cmd_lookup)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
