import logging
import re

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Custom theme for the Formaloo nodes
custom_theme = Theme(
    {
        "info": "dim cyan",
        "warning": "magenta",
        "error": "bold red",
        "form": "bold yellow",
        "node": "bold blue",
        "webhook": "bold green",
    }
)

console = Console(theme=custom_theme)

LOGGER_NAME = "formaloo_flow"


class RedactingFilter(logging.Filter):
    """Masks tokens and API keys so credentials never reach the log output."""

    SECRET_PATTERN = re.compile(
        r"(?P<label>Authorization['\"]?[:=]\s*['\"]?(?:JWT|Basic|Bearer)\s+"
        r"|X-Api-Key['\"]?[:=]\s*['\"]?|api_key['\"]?[:=]\s*['\"]?)"
        r"(?P<secret>[A-Za-z0-9_\-\.=+/]{6,})",
        re.I,
    )

    def filter(self, record):
        if not isinstance(record.msg, str):
            return True

        def mask(match):
            secret = match.group("secret")
            return f"{match.group('label')}{secret[:4]}.."

        record.msg = self.SECRET_PATTERN.sub(mask, record.msg)
        return True


def setup_global_logger(log_level: str = "INFO") -> logging.Logger:
    """
    Configures the package logger using Rich for readable output.
    """
    logger = logging.getLogger(LOGGER_NAME)

    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if not logger.handlers:
        rich_handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            markup=False,
            show_path=False,  # Compact: don't show the file path
            show_time=True,
            omit_repeated_times=True,
            keywords=["form", "field", "webhook", "node", "submission"],
        )

        formatter = logging.Formatter("%(message)s", datefmt="[%X]")
        rich_handler.setFormatter(formatter)
        rich_handler.addFilter(RedactingFilter())
        logger.addHandler(rich_handler)

    return logger


# Export a module-level logger for simple imports
logger = logging.getLogger(LOGGER_NAME)
