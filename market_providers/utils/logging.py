"""
Market Providers - Logging Facility

Library code only calls ``logging.getLogger('market_providers.<category>')``.
Applications opt into handlers through ``setup_logging()``:

- Console output
- Optional daily-rotated files per category plus combined all/errors logs
- Configurable log levels per category
"""

import glob
import logging
import os
import sys
from datetime import datetime, timedelta
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Dict, Optional, Union


# Log format: [TIMESTAMP] [LEVEL] [THREAD] [LOGGER] - MESSAGE
LOG_FORMAT = '[%(asctime)s.%(msecs)03d] [%(levelname)-8s] [%(threadName)-15s] [%(name)-35s] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

ROOT_LOGGER = 'market_providers'

# Log categories (children of the package logger)
LOG_CATEGORIES = ('registry', 'provider', 'http', 'errors', 'config', 'cli')

DEFAULT_LOG_LEVELS = {
    'registry': logging.INFO,
    'provider': logging.INFO,
    'http': logging.WARNING,
    'errors': logging.WARNING,
    'config': logging.INFO,
    'cli': logging.INFO,
}


def _to_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    return logging.getLevelName(str(level).upper())


class DailyRotatingFileHandler(TimedRotatingFileHandler):
    """
    Handler that writes one file per day with the date in its name.
    Format: category_YYYY-MM-DD.log
    """

    def __init__(
        self,
        log_dir: str,
        category: str,
        level: int = logging.DEBUG,
        retention_days: int = 30
    ):
        self.log_dir = Path(log_dir)
        self.category = category
        self.log_dir.mkdir(parents=True, exist_ok=True)

        super().__init__(
            self._get_log_filename(),
            when='midnight',
            interval=1,
            backupCount=retention_days,
            encoding='utf-8'
        )

        self.setLevel(level)
        self.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    def _get_log_filename(self) -> str:
        today = datetime.now().strftime('%Y-%m-%d')
        return str(self.log_dir / f"{self.category}_{today}.log")

    def doRollover(self):
        """Switch to the new date-based filename and prune old files."""
        if self.stream:
            self.stream.close()
            self.stream = None

        self.baseFilename = self._get_log_filename()
        self._cleanup_old_logs()

        self.mode = 'a'
        self.stream = self._open()
        self.rolloverAt = self.computeRollover(int(datetime.now().timestamp()))

    def _cleanup_old_logs(self):
        """Remove logs older than the retention period."""
        pattern = str(self.log_dir / f"{self.category}_*.log")
        cutoff = datetime.now() - timedelta(days=self.backupCount)

        for log_file in glob.glob(pattern):
            filename = os.path.basename(log_file)
            date_str = filename[len(self.category) + 1:-len('.log')]
            try:
                if datetime.strptime(date_str, '%Y-%m-%d') < cutoff:
                    os.remove(log_file)
            except (ValueError, OSError):
                continue


class LoggingManager:
    """
    Installs handlers on the ``market_providers`` logger hierarchy.
    """

    def __init__(
        self,
        log_dir: Optional[str] = None,
        console_level: Union[int, str] = logging.INFO,
        retention_days: int = 30,
        levels: Optional[Dict[str, Union[int, str]]] = None,
    ):
        """
        Args:
            log_dir: Base directory for log files; None disables file logging
            console_level: Log level for console output
            retention_days: Number of days to retain logs
            levels: Per-category level overrides
        """
        self.log_dir = log_dir
        self.console_level = _to_level(console_level)
        self.retention_days = retention_days
        self.levels = {**DEFAULT_LOG_LEVELS, **{k: _to_level(v) for k, v in (levels or {}).items()}}
        self.handlers: Dict[str, logging.Handler] = {}

        self.root = logging.getLogger(ROOT_LOGGER)
        self.root.setLevel(logging.DEBUG)
        self.root.propagate = False

        self._setup_console_handler()
        if self.log_dir:
            self._setup_file_handlers()

        for category, level in self.levels.items():
            logging.getLogger(f'{ROOT_LOGGER}.{category}').setLevel(level)

    def _setup_console_handler(self):
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(self.console_level)
        console.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        self._add_handler('console', console)

    def _setup_file_handlers(self):
        combined_dir = os.path.join(self.log_dir, 'combined')
        self._add_handler('combined_all', DailyRotatingFileHandler(
            combined_dir, 'all', level=logging.DEBUG, retention_days=self.retention_days
        ))
        self._add_handler('combined_errors', DailyRotatingFileHandler(
            combined_dir, 'errors', level=logging.ERROR, retention_days=self.retention_days
        ))
        # Upstream failures get their own file for quick triage
        errors_logger = logging.getLogger(f'{ROOT_LOGGER}.errors')
        handler = DailyRotatingFileHandler(
            os.path.join(self.log_dir, 'errors'), 'provider_errors',
            level=logging.WARNING, retention_days=self.retention_days
        )
        errors_logger.addHandler(handler)
        self.handlers['provider_errors'] = handler

    def _add_handler(self, name: str, handler: logging.Handler):
        self.root.addHandler(handler)
        self.handlers[name] = handler

    def get_logger(self, category: str) -> logging.Logger:
        return logging.getLogger(f'{ROOT_LOGGER}.{category}')

    def set_level(self, category: str, level: Union[int, str]):
        self.levels[category] = _to_level(level)
        self.get_logger(category).setLevel(self.levels[category])

    def set_console_level(self, level: Union[int, str]):
        if 'console' in self.handlers:
            self.handlers['console'].setLevel(_to_level(level))

    def shutdown(self):
        """Detach and close every handler this manager installed."""
        errors_logger = logging.getLogger(f'{ROOT_LOGGER}.errors')
        for handler in self.handlers.values():
            self.root.removeHandler(handler)
            errors_logger.removeHandler(handler)
            handler.close()
        self.handlers.clear()
        self.root.propagate = True


# Global logging manager instance
_logging_manager: Optional[LoggingManager] = None


def setup_logging(
    log_dir: Optional[str] = None,
    console_level: Union[int, str] = logging.INFO,
    retention_days: int = 30,
    levels: Optional[Dict[str, Union[int, str]]] = None,
) -> LoggingManager:
    """
    Initialize (or re-initialize) the global logging manager.

    Returns:
        LoggingManager instance
    """
    global _logging_manager

    if _logging_manager is not None:
        _logging_manager.shutdown()

    _logging_manager = LoggingManager(
        log_dir=log_dir,
        console_level=console_level,
        retention_days=retention_days,
        levels=levels,
    )
    return _logging_manager


def setup_logging_from_config(config: Dict) -> LoggingManager:
    """Initialize logging from the ``logging`` config section."""
    section = config.get('logging', {}) or {}
    return setup_logging(
        log_dir=section.get('log_dir') or os.environ.get('MARKET_PROVIDERS_LOG_DIR'),
        console_level=section.get('console_level', logging.INFO),
        retention_days=section.get('retention_days', 30),
        levels=section.get('levels'),
    )


def get_logger(category: str) -> logging.Logger:
    """Logger for a category; handlers only exist after ``setup_logging``."""
    return logging.getLogger(f'{ROOT_LOGGER}.{category}')


def shutdown_logging():
    """Shutdown the logging system."""
    global _logging_manager

    if _logging_manager:
        _logging_manager.shutdown()
        _logging_manager = None
