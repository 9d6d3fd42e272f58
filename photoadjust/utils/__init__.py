"""
PhotoAdjust utilities module.

Provides console logging setup, structured logging and batch statistics.
"""

from .logging import RenderStats, StructuredLogger, setup_console_logging

__all__ = [
    'RenderStats',
    'StructuredLogger',
    'setup_console_logging',
]
