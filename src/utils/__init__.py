"""
Utility functions for the radiology feature extraction project
"""

from .logger import setup_logger, get_timestamp

__all__ = [
    'setup_logger',
    'get_timestamp',
]
