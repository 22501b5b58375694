"""
PhageCompare Logging
Logging configuration for the command line tools

Version: 1.0.0
License: MIT
"""

import logging


def setup_logging(verbose=False):
    """Set up logging level"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    # numba's compiler is chatty at DEBUG
    logging.getLogger("numba").setLevel(logging.WARNING)
