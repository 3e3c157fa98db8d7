"""
Image preprocessing and dimension reshaping

raw images -> preprocess_image (xN) -> melt_dim -> model tensor
model tensor -> recon_dim -> per-sample images -> reverse_processing
"""

from .exceptions import ConfigError, ShapeMismatchError
from .settings import (
    ImageProcessingSettings,
    set_image_processing,
    save_settings,
    load_settings,
    NORMALIZATION_NONE,
    NORMALIZATION_MIN_MAX
)
from .processing import (
    resize_image,
    clip_values,
    min_max_normalize,
    preprocess_image,
    preprocess_images,
    reverse_processing
)
from .dimensions import (
    sample_axis,
    melt_dim,
    recon_dim,
    to_sample_major
)

__all__ = [
    'ConfigError',
    'ShapeMismatchError',
    'ImageProcessingSettings',
    'set_image_processing',
    'save_settings',
    'load_settings',
    'NORMALIZATION_NONE',
    'NORMALIZATION_MIN_MAX',
    'resize_image',
    'clip_values',
    'min_max_normalize',
    'preprocess_image',
    'preprocess_images',
    'reverse_processing',
    'sample_axis',
    'melt_dim',
    'recon_dim',
    'to_sample_major',
]
