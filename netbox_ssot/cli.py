"""Definition of the `netbox-ssot` command."""

import argparse
import sys
from typing import List, Optional

from netbox_ssot import __version__
from netbox_ssot.client import NetBoxClient
from netbox_ssot.command_utils import initialize_logger
from netbox_ssot.config import SsotOptions, load_config
from netbox_ssot.diffsync.adapters import NetBoxAdapter, get_source_adapter
from netbox_ssot.generator import ConfigurationError, NetBoxSsotException
from netbox_ssot.summary import SyncSummary
from netbox_ssot.sync import SyncOrchestrator

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2


def add_arguments(parser: argparse.ArgumentParser) -> None:
    """Add parser arguments to the netbox-ssot command."""
    parser.add_argument(
        "-c",
        "--config",
        dest="config",
        default="config.yaml",
        help="Path to the YAML configuration file. Defaults to `config.yaml`.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="Do not write any data to NetBox, overrides `netbox.dry_run`.",
    )
    parser.add_argument(
        "--adopt-unowned",
        action="store_true",
        dest="adopt_unowned",
        help="Mark matched entities created by someone else as managed by netbox-ssot, overrides "
        "`netbox.adopt_unowned`. Adopted entities are deleted once no source reports them.",
    )
    parser.add_argument(
        "-v",
        "--verbosity",
        action="count",
        dest="verbosity",
        default=None,
        help="Increase the log verbosity, overrides `logger.level`.",
    )
    parser.add_argument(
        "--force-color",
        action="store_true",
        dest="force_color",
        help="Force colorized log output.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        dest="no_color",
        help="Disable colorized log output.",
    )
    parser.add_argument(
        "--print-summary",
        action="store_true",
        dest="print_summary",
        help="Show a summary of the sync.",
    )
    parser.add_argument(
        "--save-json-summary-path",
        dest="save_json_summary_path",
        help="File path to write the JSON summary to.",
    )
    parser.add_argument(
        "--save-text-summary-path",
        dest="save_text_summary_path",
        help="File path to write the text summary to.",
    )
    parser.add_argument(
        "--trace-issues",
        action="store_true",
        dest="trace_issues",
        help="Log tracebacks of errors causing sync issues.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(
        prog="netbox-ssot",
        description="Sync infrastructure inventories into NetBox as the single source of truth.",
    )
    add_arguments(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the netbox-ssot command.

    Returns:
        int: 0 on success, 1 when the sync failed, 2 on configuration errors.
    """
    args = create_parser().parse_args(argv)

    try:
        options = load_config(args.config)
    except ConfigurationError as error:
        initialize_logger({"verbosity": 0, "force_color": args.force_color, "no_color": args.no_color})
        print(f"Configuration error: {error}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR

    verbosity = options.logger.level if args.verbosity is None else args.verbosity
    logger = initialize_logger(
        {
            "verbosity": verbosity,
            "color": options.logger.color,
            "force_color": args.force_color,
            "no_color": args.no_color,
        }
    )

    try:
        sources = [get_source_adapter(source) for source in options.sources]
    except ConfigurationError as error:
        logger.error("Configuration error", error=str(error))
        return EXIT_CONFIGURATION_ERROR

    try:
        summary = run(options, sources, args)
    except NetBoxSsotException as error:
        logger.error("Sync failed", error=str(error))
        return EXIT_FAILED

    if args.print_summary:
        summary.print()
    if args.save_json_summary_path:
        summary.dump(args.save_json_summary_path, output_format="json")
    if args.save_text_summary_path:
        summary.dump(args.save_text_summary_path, output_format="text")

    return EXIT_FAILED if summary.failed else EXIT_OK


def run(options: SsotOptions, sources, args: argparse.Namespace) -> SyncSummary:
    """Connect to NetBox and run the sync."""
    netbox_options = options.netbox
    client = NetBoxClient(
        netbox_options.url,
        netbox_options.token,
        verify_ssl=netbox_options.verify_ssl,
        timeout=netbox_options.timeout,
        retries=netbox_options.retries,
        page_size=netbox_options.page_size,
        dry_run=args.dry_run or netbox_options.dry_run,
    )
    netbox = NetBoxAdapter(client, adopt_unowned=args.adopt_unowned or netbox_options.adopt_unowned)
    netbox.trace_issues = args.trace_issues

    orchestrator = SyncOrchestrator(netbox, sources, max_workers=netbox_options.max_workers)
    return orchestrator.run()


if __name__ == "__main__":
    sys.exit(main())
