#!/usr/bin/env python3
"""
csgolog - command-line entry point

Reads a Counter-Strike server log from a file or standard input and writes
one JSON object per line to standard output. Lines that fail to parse are
reported on standard error and do not stop the run.
"""

import argparse
import json
import logging
import sys
from typing import Optional, TextIO

from csgolog import __version__
from csgolog.config import Config, ConfigError
from csgolog.error_handler import ErrorCategory, ErrorHandler
from csgolog.events import to_json
from csgolog.parse import LogParser, ParserError
from csgolog.patterns import DIALECTS

DEFAULT_CONFIG_PATH = 'config/app.yml'


def setup_logging(level: str = 'WARNING', log_file: Optional[str] = None) -> None:
    """Configure logging.

    Diagnostics go to stderr so stdout carries nothing but JSON.

    Args:
        level: Log level name
        log_file: Optional log file path
    """
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    handlers = [console_handler]
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            logging.warning(f"Could not create log file {log_file}: {e}")

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        handlers=handlers,
        force=True
    )


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate configuration.

    Args:
        config_path: Optional path to config file (default: config/app.yml)

    Returns:
        Validated configuration object

    Raises:
        SystemExit: If configuration cannot be loaded
    """
    try:
        return Config(config_path or DEFAULT_CONFIG_PATH)
    except ConfigError as e:
        logging.error(f"Configuration error: {e}")
        sys.exit(1)


def run(parser: LogParser, source: TextIO, out: TextIO, err: TextIO,
        error_handler: ErrorHandler, indent: Optional[int] = None) -> int:
    """Parse every line of ``source``, writing messages to ``out`` and errors to ``err``.

    Returns:
        Number of lines read
    """
    count = 0
    for result in parser.iter_parse(source):
        count += 1
        if result.ok:
            out.write(to_json(result.message, indent=indent) + '\n')
        else:
            info = error_handler.handle_error(result.error, result.line_number, result.line)
            err.write("ERROR: " + json.dumps(info.to_dict(), ensure_ascii=False) + '\n')
    return count


def main(argv=None):
    """Main application entry point."""
    parser = argparse.ArgumentParser(
        description='csgolog - parse Counter-Strike server logs into JSON',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  csgolog server.log               # Parse a log file
  cat server.log | csgolog         # Parse standard input
  csgolog --dialect csgo old.log   # Use the CS:GO name/ID rules
        """
    )
    parser.add_argument(
        'file',
        nargs='?',
        help='Log file to parse (default: standard input)'
    )
    parser.add_argument(
        '--config',
        type=str,
        help=f'Path to config file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--dialect',
        choices=sorted(DIALECTS),
        help='Log dialect (overrides config)'
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        default=None,
        help='Report unconvertible numeric fields instead of reading them as zero'
    )
    parser.add_argument(
        '--indent',
        type=int,
        help='Indent JSON output'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'csgolog v{__version__}'
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    logging_config = config.get_logging_config()
    setup_logging('DEBUG' if args.debug else logging_config.get('level', 'WARNING'),
                  logging_config.get('file'))
    logger = logging.getLogger(__name__)

    dialect = args.dialect or config.get('parser.dialect')
    strict = args.strict if args.strict is not None else config.get('parser.strict')
    indent = args.indent if args.indent is not None else config.get('output.indent')

    try:
        log_parser = LogParser(dialect=dialect, strict=strict)
    except ParserError as e:
        logger.error(f"Failed to initialize parser: {e}")
        sys.exit(1)

    error_handler = ErrorHandler()

    if args.file:
        try:
            source = open(args.file, 'r', encoding='utf-8', errors='replace')
        except OSError as e:
            error_handler.handle_error(e, category=ErrorCategory.FILE_SYSTEM)
            sys.exit(1)
    else:
        source = sys.stdin

    try:
        count = run(log_parser, source, sys.stdout, sys.stderr, error_handler, indent)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        sys.exit(130)
    finally:
        if source is not sys.stdin:
            source.close()

    stats = error_handler.get_error_stats()
    logger.info(f"Parsed {count} lines, {stats['total_errors']} errors "
                f"({stats['category_counts']})")


if __name__ == '__main__':
    main()
