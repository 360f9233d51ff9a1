"""Process-wide logging setup for the CLI and the gateway entrypoint."""

import logging
import sys

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Install a single stderr handler on the root logger.

    Command output goes to stdout, so logs stay on stderr and never mix
    into piped results.

    Safe to call more than once; later calls only adjust the level.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    if not any(getattr(h, "_tapread", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
        handler._tapread = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    for handler in root.handlers:
        handler.setLevel(level)

    # httpx logs every request at INFO; keep it quiet unless debugging.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return root
