"""
Logging utilities for cssprite.

Console gets the important messages, the debug log file gets everything.
"""

import logging
import sys
from typing import List, Optional, Tuple

DEFAULT_LOG_FILE = "cssprite_debug.log"


def setup_logging(log_file: Optional[str] = DEFAULT_LOG_FILE, verbose: bool = False) -> None:
    """Setup logging to both file and console."""
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers
    logger.handlers.clear()

    # File handler - detailed logs
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s')
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Console handler - important messages only
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_formatter = logging.Formatter('%(levelname)s: %(message)s')
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    logging.info(f"Logging initialized. Debug log: {log_file or 'disabled'}")


def log_intake_results(accepted: int, skipped: List[Tuple[str, str]]) -> None:
    """
    Log image intake results.

    Args:
        accepted: Number of images accepted for packing
        skipped: (name, reason) pairs for images that were ignored
    """
    logger = logging.getLogger(__name__)

    logger.info("Image intake results:")
    logger.info(f"  Accepted images: {accepted}")
    logger.info(f"  Skipped images: {len(skipped)}")

    # each skip was already warned about individually; summarise at debug only
    for name, reason in skipped[:10]:
        logger.debug(f"  - {name}: {reason}")
    if len(skipped) > 10:
        logger.debug(f"  ... and {len(skipped) - 10} more")


def log_packing_calculation(label: str, layout, calculation_time: float) -> None:
    """
    Log packing calculation results.

    Args:
        label: Which group was packed (sprite, retina, non-retina)
        layout: LayoutResult object
        calculation_time: Time taken for calculation
    """
    logger = logging.getLogger(__name__)

    logger.info(f"Packing calculation for {label} group:")
    logger.info(f"  Items placed: {len(layout.placed_items)}")
    logger.info(f"  Canvas: {layout.canvas_width}x{layout.canvas_height} pixels")
    logger.info(f"  Efficiency: {layout.efficiency:.1%}")
    logger.info(f"  Calculation time: {calculation_time:.3f} seconds")
