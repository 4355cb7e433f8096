"""Cross-cutting utilities (lowest dependency layer).

    - Settings file access (fs)
    - Unified logging (logging_config)

No module in utils/ may import from the conversion packages.
"""

from . import fs
from . import logging_config
from .logging_config import conversion_context, get_logger, push_context, setup_logging

__all__ = [
    'fs',
    'logging_config',
    'conversion_context',
    'get_logger',
    'push_context',
    'setup_logging',
]
