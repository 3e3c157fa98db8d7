"""
Image loading
"""

from .loader import (
    IMAGE_EXTENSIONS,
    load_image_paths_from_directory,
    load_image,
    load_images
)

__all__ = [
    'IMAGE_EXTENSIONS',
    'load_image_paths_from_directory',
    'load_image',
    'load_images',
]
