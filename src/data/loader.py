"""
Loading grayscale radiology images from disk
"""

from pathlib import Path
from typing import List, Sequence, Union

import cv2
import numpy as np
from tqdm import tqdm


IMAGE_EXTENSIONS = ['.png', '.jpg', '.jpeg', '.tif', '.tiff', '.npy']


def load_image_paths_from_directory(
    directory: Union[str, Path],
    extensions: List[str] = IMAGE_EXTENSIONS,
    recursive: bool = True
) -> List[Path]:
    """
    Load all image paths from a directory

    Args:
        directory: Directory path
        extensions: List of valid image extensions
        recursive: Whether to search recursively

    Returns:
        Sorted list of image paths
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ValueError(f"Not a directory: {directory}")

    pattern = '**/*' if recursive else '*'
    valid = {ext.lower() for ext in extensions}
    return sorted(p for p in directory.glob(pattern)
                  if p.is_file() and p.suffix.lower() in valid)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load one image as a 2D array

    .npy files are loaded as-is. Other formats are read in grayscale with
    their original bit depth (16-bit scans stay 16-bit).
    """
    path = Path(path)

    if path.suffix.lower() == '.npy':
        image = np.load(path)
    else:
        image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE | cv2.IMREAD_ANYDEPTH)

    if image is None:
        raise ValueError(f"Failed to load image: {path}")
    if image.ndim != 2:
        raise ValueError(f"Expected a 2D grayscale image in {path}, got shape {image.shape}")

    return image


def load_images(paths: Sequence[Union[str, Path]],
                verbose: bool = True,
                channel_dim: bool = False) -> List[np.ndarray]:
    """
    Load several images, in order

    Args:
        paths: Image paths
        verbose: Show a progress bar
        channel_dim: Append a trailing channel axis of size 1, matching
            settings with channel_dim set
    """
    iterator = tqdm(paths, desc="Loading images") if verbose else paths
    images = [load_image(p) for p in iterator]
    if channel_dim:
        images = [image[..., np.newaxis] for image in images]
    return images
