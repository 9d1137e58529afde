import logging
import sys

from pythonjsonlogger import jsonlogger

from app.config import settings


def configure_logging(level: str = "") -> None:
    if getattr(configure_logging, "_configured", False):
        return

    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    root.handlers = [handler]
    # The OpenAI client logs every request through httpx at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    configure_logging._configured = True
