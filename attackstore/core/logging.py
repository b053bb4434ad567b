import logging
import sys

from attackstore.core.config import get_settings


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger for hosts that have not done so themselves.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. Defaults to ATTACK_STORE_LOG_LEVEL.
    """
    level = level or get_settings().log_level
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
