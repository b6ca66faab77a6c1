"""
Logging setup. Modules log through `logging.getLogger(__name__)`; the
composition root calls `configure_logging` once at startup.
"""
import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger("habitual")
    root.setLevel(level.upper())
    if any(getattr(h, "_habitual", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._habitual = True  # type: ignore[attr-defined]
    root.addHandler(handler)
