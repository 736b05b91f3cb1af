"""Command-line entry point: one subcommand per collector."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, TextIO

from .collectors.registry import COLLECTORS, get_collector
from .config.loader import ConfigLoader
from .config.settings import Settings
from .utils.errors import PluginError
from .utils.logger import setup_logger
from .utils.metrics import output_json
from .version import __version__


def global_options(suppress_defaults: bool = False) -> argparse.ArgumentParser:
    """
    Options accepted both before and after the subcommand.

    Args:
        suppress_defaults: Leave unset options out of the namespace, so a
            subcommand copy does not overwrite values given before it

    Returns:
        argparse.ArgumentParser: Parent parser without its own help
    """
    def default(value):
        return argparse.SUPPRESS if suppress_defaults else value

    options = argparse.ArgumentParser(add_help=False)

    options.add_argument(
        '--pretty-print',
        action='store_true',
        default=default(False),
        help='Indent the JSON output'
    )

    options.add_argument(
        '--verbose',
        action='store_true',
        default=default(False),
        help='Enable debug logging (same as --log-level DEBUG)'
    )

    options.add_argument(
        '--log-level',
        default=default(Settings.log_level()),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    options.add_argument(
        '--config',
        default=default(None),
        help='Optional YAML file whose per-collector sections override the environment'
    )

    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='newrelic-plugins',
        description='Collect service metrics and print them as a New Relic plugin JSON document',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[global_options()],
        epilog="""
Examples:
  # Scrape the local nginx status page
  NGINXHOST=localhost NGINXLISTENPORT=80 NGINXSTATUSURI=nginx_status newrelic-plugins nginx

  # Pretty-printed output with debug logs
  newrelic-plugins --pretty-print --verbose redis

  # Global options may also follow the subcommand
  newrelic-plugins couchbase --config /etc/newrelic-plugins.yaml
        """
    )

    subcommand_options = global_options(suppress_defaults=True)
    subparsers = parser.add_subparsers(dest='command', metavar='command')
    subparsers.required = True
    for name, cls in COLLECTORS.items():
        subparsers.add_parser(
            name,
            parents=[subcommand_options],
            help=(cls.__doc__ or name).strip().splitlines()[0]
        )
    subparsers.add_parser('version', help='Print the plugin version')

    return parser


def run_collector(
    name: str,
    logger: logging.Logger,
    config_path: Optional[str] = None,
    pretty: bool = False,
    stream: Optional[TextIO] = None
) -> None:
    """
    Load configuration, collect once and print the envelope.

    Args:
        name: Subcommand name of the collector
        logger: Base logger
        config_path: Optional YAML overlay
        pretty: Indent the JSON output
        stream: Output stream, stdout by default

    Raises:
        PluginError: On any configuration, fetch, parse or output failure
    """
    cls = get_collector(name)
    config = ConfigLoader.load(cls.config_class, name, config_path=config_path)
    collector = cls(config, logger)

    logger.debug(f"Running {name} collector")
    data = asyncio.run(collector.run(__version__))
    output_json(data, pretty=pretty, stream=stream)


def main(argv: Optional[List[str]] = None):
    """
    CLI entry point.

    Exits 1 after logging when the collector fails.
    """
    args = build_parser().parse_args(argv)

    if args.command == 'version':
        print(f"version: {__version__}")
        return

    level = 'DEBUG' if args.verbose else args.log_level
    logger = setup_logger("newrelic_plugins", level)

    try:
        run_collector(args.command, logger, config_path=args.config, pretty=args.pretty_print)
    except PluginError as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
