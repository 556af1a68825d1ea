import os
import logging
import sys

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Photo blobs live under this directory (photos/ subfolder is created on first write)
PHOTO_STORAGE_PATH = os.getenv("PHOTO_STORAGE_PATH", "./uploads")

# Upload ceiling, 10 MiB unless overridden
MAX_PHOTO_BYTES = int(os.getenv("MAX_PHOTO_BYTES", str(10 * 1024 * 1024)))

AUTOSAVE_INTERVAL_SECONDS = float(os.getenv("AUTOSAVE_INTERVAL_SECONDS", "30"))

# Export identity
EVALUATOR_NAME = os.getenv("EVALUATOR_NAME", "Enerva Energy Solutions")
REPORT_FILENAME_PREFIX = os.getenv("REPORT_FILENAME_PREFIX", "energy_audit_report")
REPORT_IMAGE_MAX_PX = int(os.getenv("REPORT_IMAGE_MAX_PX", "1600"))

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
QUIET_LOGGERS = ('aiosqlite', 'sqlalchemy.engine', 'PIL', 'httpx', 'multipart')


def setup_logging():
    """Root handler on stdout; DEBUG when the DEBUG flag is on"""
    log_level = logging.DEBUG if DEBUG else logging.INFO
    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_level


setup_logging()
