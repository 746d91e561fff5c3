"""
CollectorDAO Logging System
===========================

Process-wide logging for CollectorDAO, built on the standard `logging`
module with a `rich` console handler. Messages are sanitized before they
reach a terminal or file, and governance vocabulary (addresses, proposal
ids, lifecycle states, FOR/AGAINST) is highlighted on the console.

Usage:
    >>> from collectordao.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Proposal #1 created")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
    LOG_FILE_PATH,
)


PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_LOG_FILE_PATH = PROJECT_ROOT / "logs" / "collectordao.log"

# `(name)x` fragments of a %-style logging format
_SPECIFIER_RE = re.compile(r"\([a-zA-Z_][a-zA-Z0-9_]*\)[a-zA-Z]")

_STRFTIME_DIRECTIVE = r"%(?:[EO])?(?:[-_0^#])*(?:[A-DF-HIM-NPR-VW-Za-hj-lm-npr-uw-z])"
_DATE_FORMAT_RE = re.compile(
    rf"^(?=.*{_STRFTIME_DIRECTIVE})(?:%%|{_STRFTIME_DIRECTIVE}|[0-9 \t:\-\/\.,TZ+])+$"
)

DAO_THEME = Theme(
    {
        "dao.address":         "cyan",
        "dao.arrow":           "bold yellow",
        "dao.level_critical":  "bold red reverse",
        "dao.level_debug":     "bold dim",
        "dao.level_error":     "bold red",
        "dao.level_info":      "bold green",
        "dao.level_warning":   "bold yellow",
        "dao.logger_name":     "magenta",
        "dao.proposal_id":     "bold white",
        "dao.state_good":      "bold green",
        "dao.state_bad":       "bold red",
        "dao.state_pending":   "bold yellow",
        "dao.support_for":     "green",
        "dao.support_against": "red",
        "dao.tag":             "bold magenta",
        "dao.timestamp":       "bold cyan",
    }
)


def _warn_fallback(reason: str) -> None:
    # The logging system is what failed, so report straight to stderr
    stamp = time.strftime(str(LOG_DATE_FORMAT.default()))
    print(f"{stamp} - collectordao.logger - {reason}. Using default.", file=sys.stderr)


class LogManager:
    """
    Singleton owning the root logger configuration.

    `configure` is idempotent: the first call installs the handlers, later
    calls are ignored until `reconfigure` drops the current setup.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()


    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._configured = False
                    cls._instance = instance
        return cls._instance


    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Return *log_format* if it is a usable %-style logging format,
        otherwise the `.env` default.
        """
        if not log_format:
            return str(LOG_FORMAT.default())
        log_format = str(log_format)

        orphan = next(
            (m for m in _SPECIFIER_RE.finditer(log_format)
             if m.start() == 0 or log_format[m.start() - 1] != "%"),
            None,
        )
        if orphan is not None:
            _warn_fallback(f"Malformed format specifier {orphan.group(0)!r}")
            return str(LOG_FORMAT.default())

        sample = logging.LogRecord(
            name="sample", level=logging.INFO, pathname="", lineno=0,
            msg="sample", args=(), exc_info=None,
        )
        try:
            rendered = logging.Formatter(fmt=log_format).format(sample)
        except (ValueError, KeyError, TypeError) as e:
            _warn_fallback(f"Invalid log format: {e}")
            return str(LOG_FORMAT.default())

        if _SPECIFIER_RE.search(rendered):
            _warn_fallback("Format specifiers were left unprocessed")
            return str(LOG_FORMAT.default())
        return log_format


    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """Accept only strftime directives and plain separators."""
        if not date_format:
            return str(LOG_DATE_FORMAT.default())
        date_format = str(date_format)
        if not _DATE_FORMAT_RE.match(date_format):
            _warn_fallback("Invalid date format")
            return str(LOG_DATE_FORMAT.default())
        return date_format


    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Install handlers on the root logger.

        Args:
            log_level: DEBUG, INFO, ... Defaults to LOG_LEVEL from `.env`.
            log_file: Rotating log file. Defaults to LOG_FILE_PATH, then
                `logs/collectordao.log`.
            console_output: Attach the console handler (stderr).
            file_output: Attach the file handler. Defaults to LOG_FILE_OUTPUT.
        """
        with self._lock:
            if self._configured:
                return

            level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)
            root = logging.getLogger()
            root.setLevel(level)
            root.handlers.clear()
            for noisy in ("urllib3", "asyncio"):
                logging.getLogger(noisy).setLevel(logging.WARNING)

            formatter = TerminalSafeFormatter(
                fmt=self.validate_log_format(LOG_FORMAT),
                datefmt=self.validate_date_format(LOG_DATE_FORMAT) + " UTC",
            )
            formatter.converter = time.gmtime

            handlers = []
            if console_output:
                handlers.append(self._console_handler())
            if bool(LOG_FILE_OUTPUT) if file_output is None else file_output:
                handlers.append(self._file_handler(log_file))

            for handler in handlers:
                handler.setLevel(level)
                handler.setFormatter(formatter)
                root.addHandler(handler)

            self._configured = True


    @staticmethod
    def _console_handler() -> logging.Handler:
        if not LOG_CONSOLE_HIGHLIGHTING:
            return logging.StreamHandler(sys.stderr)
        return RichHandler(
            console=Console(theme=DAO_THEME, highlight=False, stderr=True),
            highlighter=GovernanceLogHighlighter(),
            keywords=[],
            rich_tracebacks=True,
            omit_repeated_times=False,
            show_path=False,
            show_time=False,
            show_level=False,
            markup=False,
        )


    @staticmethod
    def _file_handler(log_file: Optional[Path]) -> logging.Handler:
        path = log_file or (Path(LOG_FILE_PATH) if LOG_FILE_PATH else DEFAULT_LOG_FILE_PATH)
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            filename=str(path),
            maxBytes=LOG_MAX_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )


    def reconfigure(self, **kwargs) -> None:
        """Drop the current configuration and apply a new one (used by the CLI)."""
        with self._lock:
            self._configured = False
        self.configure(**kwargs)


    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


    @property
    def is_configured(self) -> bool:
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that strips ANSI escape sequences and control characters.

    Proposal descriptions and action signatures are free text supplied by
    anyone; they must not be able to rewrite the operator's terminal or forge
    log lines (CWE-117).
    """

    _ansi_escape_re = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
    # Everything below 0x20 except Tab and Newline, plus DEL
    _control_chars_re = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")


    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        return cls._control_chars_re.sub("", cls._ansi_escape_re.sub("", text))


    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class GovernanceLogHighlighter(RegexHighlighter):
    """Colors addresses, proposal ids, lifecycle states and vote directions."""

    base_style = "dao."
    highlights = [
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<arrow>(\-\->)|(<--)|(→))",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<proposal_id>#\d+\b)",
        r"(?P<state_good>\b(SUCCEEDED|QUEUED|EXECUTED)\b)",
        r"(?P<state_bad>\b(DEFEATED|CANCELED|EXPIRED)\b)",
        r"(?P<state_pending>\b(PENDING|ACTIVE)\b)",
        r"(?P<support_for>\bFOR\b)",
        r"(?P<support_against>\bAGAINST\b)",
        r"(?P<tag>\[.*?\])",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Module logger, configuring the logging system on first use."""
    return _manager.get_logger(name)


def configure_logging(**kwargs) -> None:
    """Re-apply logging configuration, e.g. from a loaded `DAOConfig`."""
    _manager.reconfigure(**kwargs)


_manager.configure()
