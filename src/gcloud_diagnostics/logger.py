# ABOUTME: Leveled diagnostic logger for debugging agents
# ABOUTME: Formats breakpoints and intervals, optionally persisting entries to a temp file

import logging
import os
import pprint
import re
import sys
import tempfile
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

ERROR = 1
WARN = 2
INFO = 3
DEBUG = 4
SILLY = 5

LEVEL_NAMES = (None, 'ERROR', 'WARN ', 'INFO ', 'DEBUG', 'SILLY')

LOG_FILE_SUFFIX = '_log.txt'

SILLY_LOGGING_LEVEL = 5
logging.addLevelName(SILLY_LOGGING_LEVEL, 'SILLY')

# Higher diagnostic levels are more verbose, so they map to lower logging levels
_LOGGING_LEVELS = {
    ERROR: logging.ERROR,
    WARN: logging.WARNING,
    INFO: logging.INFO,
    DEBUG: logging.DEBUG,
    SILLY: SILLY_LOGGING_LEVEL,
}

_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def _logging_level(level: int) -> int:
    """Map a diagnostic level onto a stdlib logging level."""
    if level <= 0:
        return logging.CRITICAL + 1
    return _LOGGING_LEVELS.get(min(level, SILLY), SILLY_LOGGING_LEVEL)


def log_file_name(prefix: str) -> str:
    """File name used to persist entries for ``prefix``."""
    return _ILLEGAL_FILENAME_CHARS.sub('_', prefix) + LOG_FILE_SUFFIX


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return pprint.pformat(value)


class BoundedFileHandler(logging.Handler):
    """Appends at most ``limit`` records to a file, dropping the rest."""

    def __init__(self, path: str, limit: int):
        super().__init__()
        self.path = path
        self.limit = limit
        self.count = 0

    def emit(self, record: logging.LogRecord) -> None:
        if self.count >= self.limit:
            return
        self.count += 1
        try:
            with open(self.path, 'a', encoding='utf-8') as log_file:
                log_file.write(self.format(record) + '\n')
        except OSError:
            self.handleError(record)


class DebugLogger:
    """Logger handle returned by create().

    Every entry is printed to stdout as ``LEVEL:prefix: message``. A call
    logs only when the configured level is at least the called level.
    """

    def __init__(
        self,
        level: int = 0,
        prefix: str = '',
        local_limit: int = 0,
        directory: Optional[str] = None,
    ):
        """Initialize the logger.

        Args:
            level: Most verbose level to log (0 disables logging)
            prefix: Prefix written after the level name
            local_limit: Number of entries to also append to a local file
            directory: Directory of the local file (defaults to the temp dir)
        """
        self.level = level or 0
        self.prefix = prefix or ''
        self.local_limit = local_limit or 0
        self.path: Optional[str] = None

        # Not registered with logging.getLogger so handles can be dropped
        self._logger = logging.Logger(f'gcloud_diagnostics.{self.prefix}')
        self._logger.setLevel(_logging_level(self.level))
        self._logger.propagate = False

        formatter = logging.Formatter('%(message)s')
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        if self.local_limit > 0:
            self.path = os.path.join(
                directory or tempfile.gettempdir(), log_file_name(self.prefix)
            )
            local = BoundedFileHandler(self.path, self.local_limit)
            local.setFormatter(formatter)
            self._logger.addHandler(local)

    def is_enabled(self, level: int) -> bool:
        """Whether a call at ``level`` would be logged."""
        return self.level >= level

    def log(self, level: int, *values: Any) -> None:
        """Log ``values`` joined by spaces at ``level``."""
        if not self.is_enabled(level):
            return
        header = f'{LEVEL_NAMES[min(level, SILLY)]}:{self.prefix}:'
        line = ' '.join([header] + [_format_value(value) for value in values])
        self._logger.log(_logging_level(level), line)

    def error(self, *values: Any) -> None:
        self.log(ERROR, *values)

    def warn(self, *values: Any) -> None:
        self.log(WARN, *values)

    def info(self, *values: Any) -> None:
        self.log(INFO, *values)

    def debug(self, *values: Any) -> None:
        self.log(DEBUG, *values)

    def silly(self, *values: Any) -> None:
        self.log(SILLY, *values)

    def breakpoint(self, level: int, msg: str, breakpoint: Mapping[str, Any]) -> None:
        """Log a breakpoint.

        Args:
            level: Log level
            msg: Text placed before the breakpoint description
            breakpoint: Breakpoint resource as returned by the debugger API
        """
        if not self.is_enabled(level):
            return
        self.log(level, format_breakpoint(msg, breakpoint))

    def breakpoints(
        self,
        level: int,
        msg: str,
        breakpoints: Union[Mapping[str, Mapping[str, Any]], Iterable[Mapping[str, Any]]],
    ) -> None:
        """Log ``msg`` followed by every breakpoint of a mapping (or list)."""
        if not self.is_enabled(level):
            return
        self.log(level, msg)
        values = breakpoints.values() if isinstance(breakpoints, Mapping) else breakpoints
        for breakpoint in values:
            self.breakpoint(level, '', breakpoint)

    def interval(self, level: int, msg: str, interval: Sequence[float]) -> None:
        """Log ``msg`` with a ``[seconds, nanoseconds]`` interval in millis."""
        if not self.is_enabled(level):
            return
        millis = interval[0] * 1000 + interval[1] / 1000000
        if float(millis).is_integer():
            millis = int(millis)
        self.log(level, f'{msg} {millis}ms')


def format_breakpoint(msg: str, breakpoint: Mapping[str, Any]) -> str:
    """Describe a breakpoint on several tab-indented lines."""
    text = msg + 'breakpoint id: {},\n\tlocation: {}'.format(
        breakpoint.get('id'), pprint.pformat(breakpoint.get('location'))
    )
    created_time = breakpoint.get('createdTime')
    if created_time:
        created = datetime.fromtimestamp(int(created_time['seconds']))
        text += '\n\tcreatedTime: ' + created.strftime('%c')
    if breakpoint.get('condition'):
        text += '\n\tcondition: ' + repr(breakpoint['condition'])
    if breakpoint.get('expressions'):
        text += '\n\texpressions: ' + repr(breakpoint['expressions'])
    return text


def create(
    level: int = 0,
    prefix: str = '',
    local_limit: int = 0,
    directory: Optional[str] = None,
) -> DebugLogger:
    """Create a new diagnostic logger.

    Args:
        level: Most verbose level to log, ERROR (1) through SILLY (5)
        prefix: Prefix used in log lines and the local file name
        local_limit: If positive, also append up to this many entries to
            ``<tempdir>/<prefix>_log.txt``
        directory: Overrides the temp dir used for the local file
    """
    return DebugLogger(level, prefix, local_limit, directory)
