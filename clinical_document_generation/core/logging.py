"""
Logging setup shared by the pipeline facade and scripts.

All modules log through loguru's global ``logger``; this only swaps the
default sink for one using the package's LOG_FORMAT.
"""

import sys

from loguru import logger

from clinical_document_generation.core.constants import LOG_FORMAT


def configure_logging(level: str = "INFO", sink=sys.stderr) -> int:
    """
    Replace loguru's default handler with the package format.

    Args:
        level: Minimum level to emit
        sink: Where to write (stderr by default)

    Returns:
        The loguru handler id (pass to ``logger.remove`` to detach)
    """
    logger.remove()
    return logger.add(sink, level=level.upper(), format=LOG_FORMAT)
