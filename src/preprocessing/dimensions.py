"""
Melting processed images into model tensors and back

Two layouts are supported:
    - Flat: each image flattened column-major into one feature vector,
      for dense autoencoders. Shape (N, features) or (features, N).
    - Convolutional: images stacked along a sample axis with a trailing
      channel axis of size 1. Shape (N, w, h, 1) or (w, h, N, 1).

The sample axis position is chosen by settings.index_dim and resolved by
sample_axis(), which both directions share.
"""

from typing import Sequence

import numpy as np

from .exceptions import ConfigError, ShapeMismatchError
from .settings import ImageProcessingSettings, INDEX_DIM_FIRST


def sample_axis(index_dim: int, spatial_rank: int) -> int:
    """
    Axis holding the sample index in a melted tensor, channel excluded

    Args:
        index_dim: 1 for sample-first, 2 for sample-last
        spatial_rank: Number of non-sample axes (1 for flat, 2 for convolutional)
    """
    return 0 if index_dim == INDEX_DIM_FIRST else spatial_rank


def _require_index_dim(settings: ImageProcessingSettings) -> int:
    if settings.index_dim is None:
        raise ConfigError("index_dim must be set before melting or reconstructing")
    return settings.index_dim


def _flatten(image: np.ndarray) -> np.ndarray:
    return image.flatten(order='F')


def _unflatten(vectors: np.ndarray, width: int, height: int) -> np.ndarray:
    # Inverse of _flatten for a (N, width * height) block
    return vectors.reshape(-1, height, width).transpose(0, 2, 1)


def melt_dim(images: Sequence[np.ndarray],
             settings: ImageProcessingSettings,
             convolution: bool = False) -> np.ndarray:
    """
    Stack processed images into one tensor

    Args:
        images: Processed images, each of shape settings.roi_shape
        settings: Image processing settings with index_dim set
        convolution: Build the convolutional layout instead of the flat one

    Returns:
        Flat: (N, features) if index_dim == 1, else (features, N)
        Convolutional: (N, w, h, 1) if index_dim == 1, else (w, h, N, 1)
    """
    index_dim = _require_index_dim(settings)

    if len(images) == 0:
        raise ShapeMismatchError("No images to melt")
    for i, image in enumerate(images):
        if np.shape(image) != settings.roi_shape:
            raise ShapeMismatchError(
                f"Image {i} has shape {np.shape(image)}, expected {settings.roi_shape}"
            )

    if convolution:
        x = np.stack(images, axis=sample_axis(index_dim, 2))
        return x[..., np.newaxis]

    vectors = [_flatten(np.asarray(image)) for image in images]
    return np.stack(vectors, axis=sample_axis(index_dim, 1))


def to_sample_major(tensor: np.ndarray,
                    settings: ImageProcessingSettings,
                    convolution: bool = False) -> np.ndarray:
    """
    Move the sample axis of a melted tensor to the front

    Flat tensors become (N, features) and convolutional tensors
    (N, w, h, 1). Values and the channel axis are left untouched.
    """
    index_dim = _require_index_dim(settings)
    tensor = np.asarray(tensor)

    expected_rank = 4 if convolution else 2
    if tensor.ndim != expected_rank:
        raise ShapeMismatchError(
            f"Expected a rank {expected_rank} tensor, got shape {tensor.shape}"
        )
    spatial_rank = 2 if convolution else 1
    return np.moveaxis(tensor, sample_axis(index_dim, spatial_rank), 0)


def recon_dim(tensor: np.ndarray,
              settings: ImageProcessingSettings,
              convolution: bool = False) -> np.ndarray:
    """
    Recover per-sample images from a melted tensor

    Structural inverse of melt_dim: the result always has shape
    (N, w, h) and values are not modified.
    """
    width, height = settings.roi_shape
    tensor = to_sample_major(tensor, settings, convolution)

    if convolution:
        if tensor.shape[-1] != 1:
            raise ShapeMismatchError(
                f"Expected a trailing channel of size 1, got shape {tensor.shape}"
            )
        images = tensor[..., 0]
        if images.shape[1:] != (width, height):
            raise ShapeMismatchError(
                f"Spatial shape {images.shape[1:]} does not match {(width, height)}"
            )
        return images

    features = settings.feature_count
    if tensor.size % features != 0:
        raise ShapeMismatchError(
            f"Tensor of {tensor.size} elements is not a whole number of "
            f"{features}-pixel images"
        )
    n_samples = tensor.size // features
    vectors = np.ascontiguousarray(tensor).reshape(n_samples, features)
    return _unflatten(vectors, width, height)
