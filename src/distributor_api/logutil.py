import logging
import re
from typing import Iterable, Union


_SIGNATURE_FIELDS = re.compile(
    r"\b(r|s|signature|private_key|key)=(0x)?[0-9a-fA-F]+", re.IGNORECASE
)


class RedactingFilter(logging.Filter):
    """Mask signature components and key material in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = str(record.getMessage())
        masked = _SIGNATURE_FIELDS.sub(r"\1=***", msg)
        if masked != msg:
            record.msg = masked
            record.args = None
        return True


def setup_logging(
    level: Union[int, str] = logging.INFO,
    loggers: Iterable[str] = ("distributor_api", "uvicorn", "uvicorn.access"),
) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level)
    f = RedactingFilter()
    # logger-level filters do not see records propagated from child loggers
    for h in logging.getLogger().handlers:
        h.addFilter(f)
    for name in loggers:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.addFilter(f)
