"""
csgolog - Counter-Strike server log parser
"""

__version__ = "0.1.0"
__description__ = "Parse Counter-Strike (CS:GO / CS2) server logs into typed events and JSON"
__license__ = "MIT"

# Version info
VERSION = __version__
VERSION_INFO = tuple(int(x) for x in __version__.split('.'))

from .coerce import CoercionError, to_int, to_float32
from .events import EventType, Message, MESSAGE_CLASSES, to_json
from .parse import LogParser, ParserError, NoMatchError, TimestampError, parse

# Package exports
__all__ = [
    'CoercionError',
    'EventType',
    'LogParser',
    'MESSAGE_CLASSES',
    'Message',
    'NoMatchError',
    'ParserError',
    'TimestampError',
    'parse',
    'to_float32',
    'to_int',
    'to_json',
]
