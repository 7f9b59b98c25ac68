"""
Colored console logging for the command-line tools.
"""

import logging
from typing import Optional

from colorama import Fore, Style, init

# Initialize colorama for cross-platform color support
init(autoreset=True)


class ColoredFormatter(logging.Formatter):
    """
    Formatter that adds colors and icons to log messages.
    """

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT,
    }

    ICONS = {
        'DEBUG': '·',
        'INFO': '✓',
        'WARNING': '⚠',
        'ERROR': '✗',
        'CRITICAL': '✗',
    }

    def format(self, record):
        """Format the log record with colors, icons and the logger name."""
        color = self.COLORS.get(record.levelname, '')
        icon = self.ICONS.get(record.levelname, '')
        level_name = f"{record.levelname:<8}"

        log_fmt = f"{color}{icon} {level_name}{Style.RESET_ALL} | %(name)s | %(message)s"

        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def setup_colored_logging(log_level: str = "INFO") -> None:
    """
    Setup colored logging on stderr.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger = logging.getLogger()
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColoredFormatter())

    logger.setLevel(getattr(logging, log_level.upper()))
    logger.addHandler(console_handler)


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """
    Mask all but the last few characters of a secret.

    Args:
        value: Secret to mask
        visible: Number of trailing characters left readable

    Returns:
        Masked secret, e.g. "********AAAA"
    """
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


def log_summary(items: dict, title: str = "Summary") -> None:
    """
    Log key/value pairs as an aligned block.

    Args:
        items: Dictionary of summary items (key: value pairs)
        title: Title for the summary
    """
    logging.info(f"{Fore.CYAN}{Style.BRIGHT}{title}{Style.RESET_ALL}")

    max_key_len = max(len(str(k)) for k in items.keys()) if items else 0

    for key, value in items.items():
        key_str = str(key).ljust(max_key_len)
        logging.info(f"  {Fore.CYAN}{key_str}{Style.RESET_ALL} : {value}")
