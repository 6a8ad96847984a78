#!/usr/bin/env python3
"""
zendoc Export CLI

Command-line interface for exporting Zendesk tickets into a Markdown file.
"""

import argparse
import logging
import sys

from .aggregator import BatchProgress, PacingPolicy, TicketAggregator
from .config import (
    SETTINGS_FILE,
    ConfigError,
    create_sample_config,
    parse_export_options,
    resolve_config,
    validate_config,
)
from .markdown import ExportWriteError, export_tickets
from .zendesk_client import ZendeskAPI, ZendeskAPIError


def setup_logging(debug: bool = False, log_file: str = None):
    """Setup logging configuration."""
    level = logging.DEBUG if debug else logging.INFO
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=handlers,
    )


def _print_progress(progress: BatchProgress) -> None:
    sys.stdout.write(f"\r⏳ Converting tickets... ({progress.processed}/{progress.total})")
    if progress.processed == progress.total:
        sys.stdout.write("\n")
    sys.stdout.flush()


def handle_tickets(args) -> int:
    """Handle exporting tickets to Markdown."""
    try:
        config = resolve_config(subdomain=args.subdomain, email=args.email, token=args.token)
        validate_config(config)
        options = parse_export_options(output=args.output, tags=args.tags, form=args.form, status=args.status)

        print(f"🔗 Target: {config.subdomain}.zendesk.com")
        print(f"📄 Output file: {options.output}")
        if options.tags:
            print(f"🏷️  Tag filter: {', '.join(options.tags)}")
        if options.form:
            print(f"📋 Form filter: {options.form}")
        if options.status:
            print(f"🚦 Status filter: {', '.join(options.status)}")

        client = ZendeskAPI(config)
        if not client.test_connection():
            print("❌ Could not connect to Zendesk. Check your settings.")
            return 1
        print("✅ Connected to Zendesk")

        tickets = client.get_tickets(options.to_filter())
        print(f"✅ Fetched {len(tickets)} tickets")
        if not tickets:
            print("💡 No tickets to export.")
            return 0

        aggregator = TicketAggregator(client, pacing=PacingPolicy(delay=args.delay), progress=_print_progress)
        converted = aggregator.aggregate_batch(tickets)
        print(f"✅ Converted {len(converted)} tickets")
        if aggregator.failures:
            print(f"⚠️  Skipped {len(aggregator.failures)} tickets: "
                  f"{', '.join(str(f.ticket_id) for f in aggregator.failures)}")

        path = export_tickets(converted, options.output)
        print(f"✅ Export written: {path}")
        return 0

    except (ConfigError, ZendeskAPIError, ExportWriteError) as e:
        print(f"❌ Error: {e}")
        return 1


def handle_config(args) -> int:
    """Handle writing a sample settings file."""
    try:
        path = create_sample_config(args.path)
    except OSError as e:
        print(f"❌ Error: {e}")
        return 1
    print(f"✅ Sample settings written: {path}")
    return 0


def handle_test(args) -> int:
    """Handle a connection test."""
    try:
        config = resolve_config(subdomain=args.subdomain, email=args.email, token=args.token)
        validate_config(config)
    except ConfigError as e:
        print(f"❌ Error: {e}")
        return 1

    print(f"🔗 Target: {config.subdomain}.zendesk.com")
    print(f"📧 Email: {config.email}")
    if ZendeskAPI(config).test_connection():
        print("✅ Connected to Zendesk")
        return 0
    print("❌ Could not connect to Zendesk")
    return 1


def _add_credential_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--subdomain", help="Zendesk subdomain (or set ZENDESK_SUBDOMAIN env var)")
    parser.add_argument("--email", help="Zendesk account email (or set ZENDESK_EMAIL env var)")
    parser.add_argument("--token", help="Zendesk API token (or set ZENDESK_TOKEN env var)")


def main(argv: list[str] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="zendoc-export",
        description="Export Zendesk tickets into a Markdown file",
        epilog=f"Settings are read from CLI options, then environment variables, then ./{SETTINGS_FILE}",
    )

    # Global options
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    tickets = subparsers.add_parser("tickets", help="Export tickets to Markdown")
    tickets.add_argument("--tags", help="Filter: comma-separated tags")
    tickets.add_argument("--form", help="Filter: ticket form ID")
    tickets.add_argument("--status", help="Filter: comma-separated statuses")
    tickets.add_argument("--output", default="tickets.md", help="Output file path (default: tickets.md)")
    tickets.add_argument("--delay", type=float, default=0.1,
                         help="Seconds to wait between tickets (default: 0.1)")
    _add_credential_args(tickets)
    tickets.set_defaults(handler=handle_tickets)

    config = subparsers.add_parser("config", help="Write a sample settings file")
    config.add_argument("--path", default=SETTINGS_FILE, help=f"Settings file path (default: {SETTINGS_FILE})")
    config.set_defaults(handler=handle_config)

    test = subparsers.add_parser("test", help="Test the Zendesk connection")
    _add_credential_args(test)
    test.set_defaults(handler=handle_test)

    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.debug, args.log_file)

    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
