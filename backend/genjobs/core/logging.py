import logging
import os

from genjobs.core.config import LOG_DIR

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"

logger = logging.getLogger("genjobs")


def configure_logging(level: int = logging.INFO, to_file: bool = True) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    if not to_file:
        return
    log_path = os.path.join(LOG_DIR, "genjobs.log")
    if any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == os.path.abspath(log_path)
        for handler in logger.handlers
    ):
        return
    os.makedirs(LOG_DIR, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)
