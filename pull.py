#!/usr/bin/env python3
"""
Notion to Docusaurus Markdown Puller - Main CLI Entry Point

Walks the outline under a Notion root page and writes an ordered tree of
markdown files that Docusaurus can build into a sidebar.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from config_loader import ConfigLoader, get_nested
from logger import log_config, log_section, setup_logging
from notion_api_client import NotionApiClient
from orchestrator import PullOrchestrator, PullReport, RootPageUnavailableError
from plugins import build_plugin_list

__version__ = "1.0.0"

LOG_LEVEL_CHOICES = ['info', 'verbose', 'debug']


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Pull an outline of Notion pages into Docusaurus markdown files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Pull everything under a root page into ./docs
  python pull.py -n $NOTION_TOKEN -r 0123456789abcdef0123456789abcdef

  # Use a config file and publish every status
  python pull.py --config config.yaml -t "*"

  # Replace existing custom pages without asking
  python pull.py --config config.yaml --yes

  # Verbose logging
  python pull.py --config config.yaml -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration YAML file (optional)'
    )

    parser.add_argument(
        '-n', '--notion-token',
        type=str,
        help='Notion integration token (default: $NOTION_TOKEN)'
    )

    parser.add_argument(
        '-r', '--root-page',
        type=str,
        help='ID of the Notion page that holds the outline'
    )

    parser.add_argument(
        '-m', '--markdown-output-path',
        type=str,
        help='Root directory for the generated markdown (default: ./docs)'
    )

    parser.add_argument(
        '-t', '--status-tag',
        type=str,
        help='Database pages are only written when their Status equals this value; "*" writes all (default: Publish)'
    )

    parser.add_argument(
        '--custom-pages-path',
        type=str,
        help='Directory custom pages are moved to (default: src/pages)'
    )

    parser.add_argument(
        '-y', '--yes',
        action='store_true',
        help='Overwrite existing custom pages without asking'
    )

    parser.add_argument(
        '--progress',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Show a progress bar while converting pages'
    )

    parser.add_argument(
        '--report',
        type=str,
        help='Write the run report as JSON to this path'
    )

    parser.add_argument(
        '-l', '--log-level',
        choices=LOG_LEVEL_CHOICES,
        help='Log level (overrides -v)'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write the log to this file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def load_configuration(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Build the effective configuration: defaults, then the config file, then CLI arguments.

    Raises:
        FileNotFoundError: If --config names a missing file
        ValueError: If the resulting configuration is invalid
    """
    config = ConfigLoader.load(args.config) if args.config else {}
    config = ConfigLoader.with_defaults(config)
    config = ConfigLoader.merge_with_args(config, args)
    ConfigLoader.validate(config)
    return config


def ask_to_overwrite(path: Path) -> bool:
    """Ask on the terminal whether an existing custom page may be replaced."""
    if not sys.stdin.isatty():
        return False
    answer = input(f"Overwrite {path}? [y/N] ")
    return answer.strip().lower() in ('y', 'yes')


def run_pull(config: Dict[str, Any], args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute a complete pull."""
    options = ConfigLoader.to_pull_options(config)
    plugins = build_plugin_list(get_nested(config, 'plugins.enabled', []))
    client = NotionApiClient.from_config(config)

    try:
        orchestrator = PullOrchestrator(
            options,
            client,
            plugins=plugins,
            confirm_overwrite=None if options.overwrite_custom_pages else ask_to_overwrite
        )
        report = orchestrator.run()

        if args.report:
            try:
                PullReport().export_json_report(report, args.report)
            except OSError as e:
                logger.warning(f"Failed to export JSON report: {str(e)}")

        logger.info("Pull completed successfully")
        return 0

    except KeyboardInterrupt:
        logger.error("Pull interrupted by user")
        return 130
    except RootPageUnavailableError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Pull failed: {str(e)}", exc_info=True)
        return 1
    finally:
        client.close()


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        setup_logging(verbosity=args.verbose, level=args.log_level)
        logger = logging.getLogger('notion_markdown_puller.cli')

        log_section("Notion Markdown Puller")
        logger.info(f"Version: {__version__}")

        if args.config:
            logger.info(f"Loading configuration from {args.config}")
        config = load_configuration(args)

        # Reconfigure logging with config file settings
        setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level')
        )
        logger = logging.getLogger('notion_markdown_puller.cli')

        log_config(config)

        return run_pull(config, args, logger)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nPull interrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"ERROR: Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
