"""
Logging configuration using loguru.

Library modules just use ``from loguru import logger``. The CLI installs the
sinks: a terse stderr sink that stays quiet unless ``--verbose`` is given, and
a rotating debug log under ``paths.log_dir`` once the config is known.
"""

import sys

from loguru import logger

CONSOLE_FORMAT = "<level>[{level.name}]</level> {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {thread.name} | {name}:{line} | {message}"


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """
    Replace any existing sinks with the navfolio ones.

    Fetches run on worker threads, so both sinks are added with
    ``enqueue=True`` to keep lines from interleaving.

    Args:
        verbose: Send DEBUG output to stderr instead of warnings only.
        log_file: Path of the debug log. If None, only logs to stderr.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "WARNING",
        format=CONSOLE_FORMAT,
        enqueue=True,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=FILE_FORMAT,
            rotation="5 MB",
            retention=3,
            enqueue=True,
        )
