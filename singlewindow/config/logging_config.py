# =============================================================================
# File: singlewindow/config/logging_config.py
# Description: Logging configuration using the Rich framework
#              (plain and JSON formatters for non-tty / production)
# =============================================================================

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional, Dict, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme
from rich.box import ROUNDED


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key, '').lower()
    return value in ('true', '1', 'yes', 'on') if value else default


def get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


SINGLEWINDOW_THEME = Theme({
    "debug": "magenta dim",
    "info": "green",
    "warning": "dark_goldenrod",
    "error": "red",
    "critical": "bold red",
    "timestamp": "grey70",
    "logger_name": "grey35",
    "message": "grey85",
    "header": "bold cyan",
})

PLAIN_FORMAT = "[%(asctime)s] [%(levelname)-8s] [%(name)-40s] %(message)s"
PLAIN_DATEFMT = "%Y-%m-%d %H:%M:%S"


class ClearanceRichHandler(RichHandler):
    """RichHandler with compact defaults for clearance services"""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('show_time', True)
        kwargs.setdefault('show_level', True)
        kwargs.setdefault('show_path', False)
        kwargs.setdefault('markup', False)
        kwargs.setdefault('rich_tracebacks', True)
        kwargs.setdefault('tracebacks_show_locals', False)
        super().__init__(*args, **kwargs)

    def format(self, record: logging.LogRecord) -> str:
        """Prefix messages with a shortened logger name"""
        message = super().format(record)
        name = record.name
        if name.startswith("singlewindow."):
            name = name[len("singlewindow."):]
        return f"[{name}] {message}"


class ProductionFormatter(logging.Formatter):
    """JSON formatter for production environments"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if get_env_bool('LOG_JSON_INCLUDE_EXTRAS', True):
            for extra in ('declaration_id', 'guarantee_id', 'reason_code', 'correlation_id'):
                if hasattr(record, extra):
                    log_obj[extra] = str(getattr(record, extra))

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj)


def get_logger_level_from_env(logger_name: str, default_level: int) -> int:
    """Get logger level from environment variable."""
    # e.g., "singlewindow.customs.guarantee" -> "LOGLEVEL_SINGLEWINDOW_CUSTOMS_GUARANTEE"
    env_name = f"LOGLEVEL_{logger_name.replace('.', '_').upper()}"

    level_str = os.getenv(env_name, '').upper()
    if level_str:
        level_map = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'WARN': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL,
        }
        return level_map.get(level_str, default_level)

    return default_level


def setup_logging(
        service_name: str = "singlewindow",
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
        enable_json: Optional[bool] = None,
) -> None:
    """
    Configure logging with the Rich framework.

    Args:
        service_name: Name of the service (e.g., "clearance", "transit")
        log_level: Override log level
        log_file: Optional log file path
        enable_json: Enable JSON formatting for production
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE")

    if enable_json is None:
        enable_json = get_env_bool('LOG_JSON_FORMAT', False)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    use_rich = not enable_json and (
            sys.stdout.isatty() or
            get_env_bool("FORCE_COLOR", False)
    )

    if use_rich:
        console_width = get_env_int('LOG_CONSOLE_WIDTH', 0) or None
        console = Console(
            theme=SINGLEWINDOW_THEME,
            force_terminal=get_env_bool("FORCE_COLOR", False),
            width=console_width,
        )
        root_logger.addHandler(ClearanceRichHandler(console=console))

    elif enable_json:
        json_handler = logging.StreamHandler(sys.stdout)
        json_handler.setFormatter(ProductionFormatter())
        root_logger.addHandler(json_handler)

    else:
        plain_handler = logging.StreamHandler(sys.stdout)
        plain_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATEFMT))
        root_logger.addHandler(plain_handler)

    if log_file:
        max_bytes = get_env_int('LOG_MAX_SIZE_MB', 100) * 1024 * 1024
        backup_count = get_env_int('LOG_BACKUP_COUNT', 5)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding=os.getenv('LOG_FILE_ENCODING', 'utf-8'),
        )
        # Always plain for files
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATEFMT))
        root_logger.addHandler(file_handler)

    default_noise_config = {
        "prometheus_client": logging.WARNING,
        "singlewindow.messaging": logging.INFO,
        "singlewindow.customs.risk": logging.INFO,
        "singlewindow.customs.guarantee": logging.INFO,
        "singlewindow.customs.declaration": logging.INFO,
        "singlewindow.customs.transit": logging.INFO,
        "singlewindow.infra.reliability": logging.WARNING,
    }

    for logger_name, default_level in default_noise_config.items():
        logging.getLogger(logger_name).setLevel(
            get_logger_level_from_env(logger_name, default_level)
        )

    logger = logging.getLogger(f"{service_name}.startup")
    logger.info(f"Logging configured for {service_name} service")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def log_metrics_table(logger: logging.Logger, title: str, metrics: Dict[str, Any]) -> None:
    """Render a key/value table (rich on a tty, plain lines otherwise)"""
    if not sys.stdout.isatty():
        logger.info(f"{title}: " + ", ".join(f"{k}={v}" for k, v in metrics.items()))
        return

    table = Table(box=ROUNDED, show_header=True, header_style="header")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for key, value in metrics.items():
        table.add_row(str(key), str(value))

    Console(theme=SINGLEWINDOW_THEME).print(Panel(table, title=title, expand=False))


# =============================================================================
# EOF
# =============================================================================
