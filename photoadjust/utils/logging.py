"""
Logging utilities for PhotoAdjust
Provides structured logging and batch render statistics
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

import colorlog

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_console_handler: Optional[logging.Handler] = None


class StructuredLogger:
    """Provides structured logging with metadata"""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize structured logger

        Args:
            name: Logger name
            metadata: Default metadata to include in all logs
        """
        self.logger = logging.getLogger(name)
        self.metadata = metadata or {}

    def _format_message(self, message: str, **kwargs) -> str:
        data = {**self.metadata, **kwargs}
        if data:
            return f"{message} | {json.dumps(data, default=str, ensure_ascii=False)}"
        return message

    def bind(self, **metadata) -> 'StructuredLogger':
        """Return a logger for the same name with extra default metadata."""
        return StructuredLogger(self.logger.name, {**self.metadata, **metadata})

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message, **kwargs))


class RenderStats:
    """Tracks batch render statistics"""

    def __init__(self):
        self.start_time = datetime.now()
        self.total_images = 0
        self.rendered_images = 0
        self.failed_images = 0
        self.errors: List[Dict[str, Any]] = []
        self.render_times: List[float] = []

    def set_total(self, total: int):
        """Set total number of images to render"""
        self.total_images = total

    def add_result(self, render_time: Optional[float] = None):
        """
        Record a successful render

        Args:
            render_time: Seconds spent rendering and saving the image
        """
        self.rendered_images += 1
        if render_time is not None:
            self.render_times.append(render_time)

    def add_error(self, file_path: str, error: str):
        """Record a failed image"""
        self.failed_images += 1
        self.errors.append({
            'file': file_path,
            'error': error,
            'time': datetime.now(),
        })

    @property
    def processed_images(self) -> int:
        return self.rendered_images + self.failed_images

    def get_progress_percentage(self) -> float:
        if self.total_images == 0:
            return 0.0
        return (self.processed_images / self.total_images) * 100

    def get_elapsed_time(self) -> float:
        """Get elapsed time in seconds"""
        return (datetime.now() - self.start_time).total_seconds()

    def get_average_render_time(self) -> float:
        if not self.render_times:
            return 0.0
        return sum(self.render_times) / len(self.render_times)

    def get_summary(self) -> Dict[str, Any]:
        """Get render summary"""
        elapsed = self.get_elapsed_time()

        return {
            'total_images': self.total_images,
            'rendered_images': self.rendered_images,
            'failed_images': self.failed_images,
            'success_rate': (self.rendered_images / self.processed_images * 100)
                            if self.processed_images > 0 else 0,
            'errors': len(self.errors),
            'elapsed_time': elapsed,
            'average_time_per_image': self.get_average_render_time(),
            'images_per_second': self.processed_images / elapsed if elapsed > 0 else 0,
        }

    def print_summary(self):
        """Print render summary to console"""
        summary = self.get_summary()

        print("\n" + "=" * 60)
        print("RENDER SUMMARY")
        print("=" * 60)
        print(f"Total images:     {summary['total_images']}")
        print(f"Rendered:         {summary['rendered_images']} ({summary['success_rate']:.1f}%)")
        print(f"Failed:           {summary['failed_images']}")
        print(f"Elapsed time:     {summary['elapsed_time']:.1f}s")
        print(f"Avg time/image:   {summary['average_time_per_image']:.2f}s")
        print(f"Render rate:      {summary['images_per_second']:.1f} images/s")
        print("=" * 60)

        if self.errors:
            print("\nERRORS:")
            for error in self.errors[:10]:  # Show first 10 errors
                print(f"  - {error['file']}: {error['error']}")
            if len(self.errors) > 10:
                print(f"  ... and {len(self.errors) - 10} more errors")


def setup_console_logging(level: str = "INFO", color: bool = True,
                          fmt: str = DEFAULT_FORMAT) -> logging.Handler:
    """
    Setup console logging with optional color support

    Args:
        level: Logging level name
        color: Whether to use colored output (only on a TTY)
        fmt: Log record format for the plain formatter

    Returns:
        The installed handler
    """
    global _console_handler

    root_logger = logging.getLogger()
    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)

    console_handler = logging.StreamHandler(sys.stderr)

    if color and sys.stderr.isatty():
        formatter = colorlog.ColoredFormatter(
            '%(log_color)s%(asctime)s - %(name)s - %(levelname)s%(reset)s - %(message)s',
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )
    else:
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)

    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.addHandler(console_handler)
    _console_handler = console_handler
    return console_handler
