"""
Forward and reverse value processing for single images

Forward processing runs in a fixed order: resize, crop to the region of
interest, replace missing values, clip, normalize. Only the normalization
step can be reversed.
"""

import logging
from typing import List, Optional, Sequence

import cv2
import numpy as np
from joblib import Parallel, delayed

from .exceptions import ConfigError, ShapeMismatchError
from .settings import ImageProcessingSettings, NORMALIZATION_MIN_MAX


logger = logging.getLogger(__name__)


def resize_image(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Resize a 2D image to (width, height) with bilinear interpolation

    Images already at the target shape are returned as a float copy
    without resampling.
    """
    image = np.ascontiguousarray(image, dtype=np.float64)
    if image.shape == (width, height):
        return image.copy()
    # cv2 takes dsize as (columns, rows)
    return cv2.resize(image, (height, width), interpolation=cv2.INTER_LINEAR)


def clip_values(x: np.ndarray,
                min_limit: Optional[float] = None,
                max_limit: Optional[float] = None) -> np.ndarray:
    """
    Clamp values to [min_limit, max_limit]

    Either bound may be None, in which case that side is left open.
    """
    if max_limit is not None:
        x = np.where(x > max_limit, max_limit, x)
    if min_limit is not None:
        x = np.where(x < min_limit, min_limit, x)
    return x


def min_max_normalize(x, min_limit: Optional[float], max_limit: Optional[float]):
    """Scale values from [min_limit, max_limit] to [0, 1]"""
    if min_limit is None or max_limit is None:
        raise ConfigError("min-max normalization requires both min_limit and max_limit")
    return (x - min_limit) / (max_limit - min_limit)


def preprocess_image(image: np.ndarray, settings: ImageProcessingSettings) -> np.ndarray:
    """
    Preprocess one raw image

    Args:
        image: 2D array (width, height), or (width, height, 1) when
            settings.channel_dim is set
        settings: Image processing settings

    Returns:
        Float array of shape settings.roi_shape. Values lie in [0, 1] under
        min-max normalization, otherwise in the clipped original range.

    Example:
        >>> settings = ImageProcessingSettings(
        ...     normalization='min-max', min_limit=0, max_limit=10, width=4, height=4
        ... )
        >>> float(preprocess_image(np.full((4, 4), 5.0), settings)[0, 0])
        0.5
    """
    image = np.asarray(image)

    expected_rank = 3 if settings.channel_dim else 2
    if image.ndim != expected_rank:
        raise ShapeMismatchError(
            f"Expected a {expected_rank}D image (channel_dim={settings.channel_dim}), "
            f"got shape {image.shape}"
        )
    if settings.channel_dim:
        if image.shape[-1] != 1:
            raise ShapeMismatchError(
                f"Expected a single trailing channel, got shape {image.shape}"
            )
        image = image[..., 0]
    if image.size == 0:
        raise ShapeMismatchError(f"Cannot process an empty image of shape {image.shape}")

    x = resize_image(image, settings.width, settings.height)

    # Crop to region of interest
    x = x[np.ix_(settings.roi_width, settings.roi_height)]

    # Missing values
    x[np.isnan(x)] = 0

    x = clip_values(x, min_limit=settings.min_limit, max_limit=settings.max_limit)

    if settings.normalization == NORMALIZATION_MIN_MAX:
        x = min_max_normalize(x, settings.min_limit, settings.max_limit)

    return x


def preprocess_images(images: Sequence[np.ndarray],
                      settings: ImageProcessingSettings,
                      n_jobs: int = 1) -> List[np.ndarray]:
    """
    Preprocess a batch of independent images

    Args:
        images: Raw images
        settings: Image processing settings shared by every image
        n_jobs: joblib worker count (1 runs inline, -1 uses all cores)

    Returns:
        Processed images, in input order
    """
    if n_jobs == 1:
        return [preprocess_image(image, settings) for image in images]

    logger.debug("Preprocessing %d images with n_jobs=%d", len(images), n_jobs)
    return Parallel(n_jobs=n_jobs)(
        delayed(preprocess_image)(image, settings) for image in images
    )


def reverse_processing(x, settings: ImageProcessingSettings):
    """
    Undo min-max normalization

    Works on scalars, numpy arrays and torch tensors. Resizing, cropping
    and clipping are lossy and are not reversed.
    """
    if settings.normalization == NORMALIZATION_MIN_MAX:
        return x * (settings.max_limit - settings.min_limit) + settings.min_limit
    return x
