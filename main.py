#!/usr/bin/env python3
"""logtail — load a folder of structured logs and follow it for new entries."""

import os
import sys
import time
import signal
import argparse
import logging

from logtail.config import LOG_LEVELS, load_config, load_yaml_config
from logtail.filters import filter_records
from logtail.formatter import get_formatter
from logtail.models import LogCategory, LogLevel
from logtail.service import LogTailService
from logtail.tailer import WatchError

logger = logging.getLogger(__name__)

_running = True


def _signal_handler(sig, frame):
    global _running
    logger.info("Shutdown signal received, stopping...")
    _running = False


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logtail",
        description="Load, parse and follow structured log files in a directory tree.",
    )
    parser.add_argument("log_dir", nargs="?", default=None,
                        help="Directory to load and watch (default: ./logs)")
    parser.add_argument("--config", default=None,
                        help="Path to YAML config file")
    parser.add_argument("--extensions", default=None,
                        help="Comma-separated file extensions (default: log,jsonl,json)")
    parser.add_argument("--poll-interval", dest="poll_interval", type=float, default=None,
                        help="Seconds between polling scans (default: 2.0)")
    parser.add_argument("--level", dest="level_filter", default=None,
                        choices=[lvl.value for lvl in LogLevel],
                        help="Only print records with this level")
    parser.add_argument("--category", dest="category_filter", default=None,
                        choices=[cat.value for cat in LogCategory],
                        help="Only print records with this category")
    parser.add_argument("--search", default=None,
                        help="Only print records containing this text (case-insensitive)")
    parser.add_argument("--output", dest="output_format", choices=["text", "json"], default=None,
                        help="Output format (default: text)")
    parser.add_argument("--color", action="store_true", default=None,
                        help="Colorize output by log level (ANSI)")
    parser.add_argument("--no-tail", dest="tail", action="store_false", default=None,
                        help="Print the existing records and exit")
    parser.add_argument("--export", nargs="?", const="", default=None,
                        help="Export loaded records as JSON to this file or directory "
                             "(default: the configured export_dir)")
    parser.add_argument("--log-level", dest="log_level", type=str.upper, default=None,
                        choices=LOG_LEVELS, help="Diagnostic log level (default: INFO)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_cli_parser().parse_args(argv)
    config = load_config(args, load_yaml_config(args.config))

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s [LOGTAIL] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    level = LogLevel(config.level_filter) if config.level_filter else None
    category = LogCategory(config.category_filter) if config.category_filter else None
    fmt = get_formatter(config.output_format, config.color)

    def emit(records, path=None):
        for record in filter_records(records, level, category, config.search):
            print(fmt(record), flush=True)

    service = LogTailService(
        on_batch=emit,
        extensions=config.extensions,
        poll_interval=config.poll_interval,
    )

    try:
        records = service.load_folder(config.log_dir)
    except NotADirectoryError as e:
        logger.error("%s", e)
        return 1
    # Oldest first on a terminal
    emit(list(reversed(records)))
    logger.info("Loaded %d record(s), %d error(s)", len(records), service.error_count())

    if args.export is not None:
        target = args.export
        if not target:
            os.makedirs(config.export_dir, exist_ok=True)
            target = config.export_dir
        service.export_logs(target)

    if not config.tail:
        return 0

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        service.start_watching(config.log_dir)
    except WatchError as e:
        logger.error("%s", e)
        return 1

    logger.info("Following %s. Press Ctrl+C to stop.", config.log_dir)
    try:
        while _running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass

    logger.info("Shutting down...")
    service.stop_watching()
    logger.info("Stats: %d record(s) held, %d error(s)", len(service.store), service.error_count())
    return 0


if __name__ == "__main__":
    sys.exit(main())
