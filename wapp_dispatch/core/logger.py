import logging
import sys
import re
from pathlib import Path
from typing import Optional

# Patterns that may contain sensitive data
_SENSITIVE_PATTERN = re.compile(
    r'(password|passwd|secret|token|access_token|api_key|apikey|authorization|bearer)'
    r'\s*[=:]\s*\S+',
    re.IGNORECASE
)


class SensitiveDataFilter(logging.Filter):
    """Filter that redacts credentials from log messages."""
    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _SENSITIVE_PATTERN.sub(
                lambda m: m.group().split('=')[0].split(':')[0] + '=***REDACTED***'
                if '=' in m.group() else m.group().split(':')[0] + ': ***REDACTED***',
                record.msg
            )
        return True


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure process logging once at startup.

    Args:
        level: console log level
        log_file: optional path for a detailed DEBUG log

    Returns:
        The configured root logger
    """
    detailed_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    simple_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S"
    )
    sensitive_filter = SensitiveDataFilter()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(simple_formatter)
    console_handler.addFilter(sensitive_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        file_handler.addFilter(sensitive_filter)
        root_logger.addHandler(file_handler)

    # Silence noisy loggers
    for noisy in ("httpx", "httpcore", "asyncpg", "botocore", "boto3", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root_logger.info(f"Logging configured: level={level}, file={log_file}")
    return root_logger
