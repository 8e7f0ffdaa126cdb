"""
Log line parser for csgolog - turns Counter-Strike server log lines into messages.

A log line is ``L MM/DD/YYYY - HH:MM:SS: <body>``. The timestamp prefix is
parsed as UTC and the body is tried against the pattern catalog in order;
the first matching entry builds the message. A line with a valid prefix
whose body matches nothing becomes an Unknown message, so no timestamped
line is ever dropped.

Parsing is a pure function of the line. The catalog is an immutable tuple
built at import time and may be shared between threads.
"""

import re
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from .coerce import CoercionError
from .events import Message, Unknown
from .patterns import (
    CATALOGS, DEFAULT_CATALOG, DEFAULT_DIALECT, PatternEntry,
)

logger = logging.getLogger(__name__)

LOG_LINE_PATTERN = re.compile(r'L (\d{2}/\d{2}/\d{4} - \d{2}:\d{2}:\d{2}): (.*)')

TIMESTAMP_FORMAT = '%m/%d/%Y - %H:%M:%S'


class ParserError(Exception):
    """Parser-related errors."""
    pass


class NoMatchError(ParserError):
    """The line does not start with a log timestamp prefix."""

    def __init__(self, message: str = "no match"):
        super().__init__(message)


class TimestampError(ParserError):
    """The timestamp prefix has the right shape but is not a valid date/time."""
    pass


def parse_timestamp(value: str) -> datetime:
    """Parse a ``MM/DD/YYYY - HH:MM:SS`` log timestamp as UTC.

    Raises:
        TimestampError: With the underlying parser's message
    """
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise TimestampError(str(e)) from e


def parse(line: str, catalog: Sequence[PatternEntry] = DEFAULT_CATALOG,
          strict: bool = False) -> Message:
    """Parse a single log line into a message.

    Args:
        line: Raw log line
        catalog: Ordered pattern catalog to dispatch the body against
        strict: Raise CoercionError on unconvertible numeric captures

    Returns:
        Message built by the first matching catalog entry, or Unknown

    Raises:
        NoMatchError: If the line has no timestamp prefix
        TimestampError: If the timestamp is not a valid date/time
        CoercionError: In strict mode, if a numeric capture cannot be converted
    """
    result = LOG_LINE_PATTERN.search(line)
    if result is None:
        raise NoMatchError()

    timestamp = parse_timestamp(result.group(1))
    body = result.group(2).rstrip('\r')

    for entry in catalog:
        match = entry.match(body)
        if match:
            return entry.build(timestamp, match, strict)

    return Unknown(time=timestamp, raw=body)


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one line of a batch; exactly one of message/error is set."""

    line_number: int
    line: str
    message: Optional[Message] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class LogParser:
    """Parses Counter-Strike server logs using a pattern catalog."""

    def __init__(self, dialect: str = DEFAULT_DIALECT, strict: bool = False,
                 catalog: Optional[Sequence[PatternEntry]] = None):
        """Initialize parser.

        Args:
            dialect: Log dialect selecting a built-in catalog
            strict: Surface numeric coercion failures as errors
            catalog: Custom catalog; overrides ``dialect`` when given

        Raises:
            ParserError: If the dialect is unknown
        """
        if catalog is None:
            if dialect not in CATALOGS:
                raise ParserError(f"Unknown dialect: {dialect}")
            catalog = CATALOGS[dialect]

        self.dialect = dialect
        self.strict = strict
        self.catalog = tuple(catalog)

        logger.debug(f"Parser ready with {len(self.catalog)} patterns "
                     f"(dialect={dialect}, strict={strict})")

    def parse_line(self, line: str) -> Message:
        """Parse a single log line.

        Raises:
            ParserError: If the line is not a valid log line
            CoercionError: In strict mode, on an unconvertible numeric capture
        """
        return parse(line, self.catalog, self.strict)

    def iter_parse(self, lines: Iterable[str]) -> Iterator[ParseResult]:
        """Parse lines one by one, never aborting on a bad line.

        Trailing newlines are trimmed before parsing.

        Args:
            lines: Iterable of raw log lines

        Yields:
            ParseResult for every input line, in input order
        """
        for line_number, raw in enumerate(lines, start=1):
            line = raw.rstrip('\r\n')
            try:
                message = self.parse_line(line)
            except (ParserError, CoercionError) as e:
                logger.debug(f"Line {line_number}: {type(e).__name__}: {e}")
                yield ParseResult(line_number, line, error=e)
            else:
                yield ParseResult(line_number, line, message=message)

    def parse_file(self, path: Union[str, Path]) -> List[Message]:
        """Parse an entire log file, skipping lines that fail to parse.

        Args:
            path: Path to the log file

        Returns:
            Messages in file order

        Raises:
            OSError: If the file cannot be read
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            results = list(self.iter_parse(f))

        messages = [r.message for r in results if r.ok]
        skipped = len(results) - len(messages)
        if skipped:
            logger.warning(f"Skipped {skipped} unparsable lines in {path}")
        logger.info(f"Parsed {len(messages)} messages from {path}")
        return messages

    def get_pattern_info(self) -> Dict[str, Any]:
        """Get information about the loaded catalog.

        Returns:
            Dictionary with pattern information
        """
        return {
            'dialect': self.dialect,
            'strict': self.strict,
            'total_patterns': len(self.catalog),
            'event_types': [entry.event_type.value for entry in self.catalog],
        }

