import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Настройка root logger; уровень из аргумента, BARTERCART_LOG_LEVEL или LOG_LEVEL (default INFO)."""
    level_name = (level or os.getenv("BARTERCART_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
