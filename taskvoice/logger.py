"""
Logging System

Named loggers for taskvoice components, all driven by the ``logging``
section of the config (level, file, console).

Components ask for their logger with the config they were built with. The
active config is also remembered, so a logger first requested without one
(helpers that run before or outside a component) still gets the configured
handlers, and ``configure_logging`` re-applies the settings to every logger
handed out so far when the config file changes.
"""

import logging
import sys
from pathlib import Path


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class Logger:
    """Registry of taskvoice loggers and the config they follow"""

    _loggers = {}
    _config = None

    @classmethod
    def get_logger(cls, name: str, config=None) -> logging.Logger:
        """
        Get or create a logger instance

        Args:
            name: Logger name (usually __name__)
            config: Configuration object; the active one is used if omitted

        Returns:
            Configured logger instance
        """
        if name in cls._loggers:
            return cls._loggers[name]

        logger = logging.getLogger(name)
        if not logger.handlers:
            cls._apply(logger, config if config is not None else cls._config)

        cls._loggers[name] = logger
        return logger

    @classmethod
    def configure(cls, config) -> None:
        """Make config the active one and re-apply it to every known logger."""
        cls._config = config
        for logger in cls._loggers.values():
            cls._drop_handlers(logger)
            cls._apply(logger, config)

    @staticmethod
    def _drop_handlers(logger: logging.Logger) -> None:
        for handler in list(logger.handlers):
            if getattr(handler, "_taskvoice", False):
                logger.removeHandler(handler)
                handler.close()

    @classmethod
    def _apply(cls, logger: logging.Logger, config) -> None:
        """Set level and attach console/file handlers from config"""

        if config:
            level_str = config.get("logging.level", "INFO")
            log_file = config.get("logging.file")
            console_enabled = config.get("logging.console", True)
        else:
            level_str = "INFO"
            log_file = None
            console_enabled = True

        level = getattr(logging, str(level_str).upper(), logging.INFO)
        logger.setLevel(level)

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        handlers = []

        if console_enabled:
            handlers.append(logging.StreamHandler(sys.stdout))

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))

        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(formatter)
            # Only handlers we created are swapped on reconfiguration
            handler._taskvoice = True
            logger.addHandler(handler)

        logger.propagate = False


def get_logger(name: str, config=None) -> logging.Logger:
    """Logger for a taskvoice component (see Logger.get_logger)."""
    return Logger.get_logger(name, config)


def configure_logging(config) -> None:
    """Apply config's logging section to all taskvoice loggers."""
    Logger.configure(config)
