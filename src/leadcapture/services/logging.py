import logging
from typing import Literal

LOG_FORMAT_DEBUG = (
    "[%(levelname)7s]: %(name)s - %(message)s%(context)s --- %(pathname)s:%(lineno)d"
)
LOG_FORMAT_PROD = "%(asctime)s - %(name)s - %(levelname)s - %(message)s%(context)s"

_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
    | {"message", "asctime", "context", "taskName"}
)


class ContextFormatter(logging.Formatter):
    """Appends values passed through ``extra=`` as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        pairs = [
            f"{key}={value}"
            for key, value in sorted(record.__dict__.items())
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        ]
        record.context = f" [{' '.join(pairs)}]" if pairs else ""
        return super().format(record)


def setup_logging(env: Literal["local", "dev", "prod"]) -> None:
    """Setup logging configuration based on the environment."""
    if env in ("local", "dev"):
        level, fmt = logging.DEBUG, LOG_FORMAT_DEBUG
    else:
        level, fmt = logging.INFO, LOG_FORMAT_PROD

    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(fmt))
    logging.basicConfig(level=level, handlers=[handler])

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
