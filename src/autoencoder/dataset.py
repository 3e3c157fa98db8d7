"""
Dataset classes for autoencoder training on melted image tensors

Melted tensors come from melt_dim and may hold the sample index on either
axis. The datasets here always yield one sample at a time, in the layout
the PyTorch models expect:
    - flat: (features,)
    - convolutional: (1, width, height), channel-first
"""

import logging
from typing import Optional, Tuple, Union

import numpy as np
import torch
from torch.utils.data import Dataset, DataLoader

from ..preprocessing import (
    ImageProcessingSettings,
    ShapeMismatchError,
    sample_axis,
    to_sample_major
)


logger = logging.getLogger(__name__)


def to_model_input(tensor: np.ndarray,
                   settings: ImageProcessingSettings,
                   convolution: bool = False) -> torch.Tensor:
    """
    Convert a melted tensor to a float32 batch for the models

    Returns:
        (N, features) for flat tensors, (N, 1, width, height) for
        convolutional tensors
    """
    samples = to_sample_major(tensor, settings, convolution)
    expected = settings.roi_shape + (1,) if convolution else (settings.feature_count,)
    if samples.shape[1:] != expected:
        raise ShapeMismatchError(
            f"Samples have shape {samples.shape[1:]}, settings describe {expected}"
        )
    if convolution:
        samples = samples.transpose(0, 3, 1, 2)
    return torch.from_numpy(np.ascontiguousarray(samples, dtype=np.float32))


def from_model_output(batch: torch.Tensor,
                      settings: ImageProcessingSettings,
                      convolution: bool = False) -> np.ndarray:
    """
    Convert model output back to the melted layout described by settings

    Inverse of to_model_input, so the result can go straight to recon_dim.
    """
    samples = batch.detach().cpu().numpy()
    if convolution:
        samples = samples.transpose(0, 2, 3, 1)
    axis = sample_axis(settings.index_dim, 2 if convolution else 1)
    return np.moveaxis(samples, 0, axis)


class MeltedImageDataset(Dataset):
    """
    PyTorch Dataset over a melted image tensor

    Args:
        tensor: Output of melt_dim
        settings: Settings used to melt the tensor
        convolution: Whether the tensor uses the convolutional layout

    Example:
        >>> data = melt_dim(images, settings, convolution=True)
        >>> dataset = MeltedImageDataset(data, settings, convolution=True)
        >>> dataset[0].shape
        torch.Size([1, 64, 64])
    """

    def __init__(
        self,
        tensor: np.ndarray,
        settings: ImageProcessingSettings,
        convolution: bool = False
    ):
        self.settings = settings
        self.convolution = convolution
        self.samples = to_model_input(tensor, settings, convolution)

    def __len__(self) -> int:
        return len(self.samples)

    def __getitem__(self, idx: int) -> torch.Tensor:
        return self.samples[idx]


def split_train_val(
    tensor: np.ndarray,
    settings: ImageProcessingSettings,
    val_prop: float = 0.2,
    convolution: bool = False,
    seed: Optional[int] = 42
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split a melted tensor into train and validation parts along its sample axis

    With val_prop == 0 the validation set is the training set. Otherwise
    round(val_prop * N) randomly chosen samples are held out. Both parts
    keep the layout of the input tensor.

    Args:
        tensor: Output of melt_dim
        settings: Settings used to melt the tensor
        val_prop: Validation proportion in [0, 1)
        convolution: Whether the tensor uses the convolutional layout
        seed: Random seed for reproducibility

    Returns:
        Tuple of (train_tensor, val_tensor)
    """
    if not 0 <= val_prop < 1:
        raise ValueError(f"val_prop must be in [0, 1), got {val_prop}")

    axis = sample_axis(settings.index_dim, 2 if convolution else 1)
    # Validates rank and index_dim
    n_samples = to_sample_major(tensor, settings, convolution).shape[0]

    if val_prop == 0:
        return tensor, tensor

    n_val = int(round(val_prop * n_samples))
    if n_val == 0:
        logger.warning(
            "val_prop=%s leaves no validation samples out of %d, validating on training data",
            val_prop, n_samples
        )
        return tensor, tensor
    if n_val >= n_samples:
        raise ValueError(f"val_prop={val_prop} leaves no training samples out of {n_samples}")

    rng = np.random.RandomState(seed)
    indices = rng.permutation(n_samples)
    val_idx = np.sort(indices[:n_val])
    train_idx = np.sort(indices[n_val:])

    logger.info("Train set: %d samples, Val set: %d samples", len(train_idx), len(val_idx))
    return np.take(tensor, train_idx, axis=axis), np.take(tensor, val_idx, axis=axis)


def create_data_loaders(
    train_dataset: Dataset,
    val_dataset: Optional[Dataset] = None,
    batch_size: int = 32,
    num_workers: int = 0,
    shuffle_train: bool = True
) -> Union[DataLoader, Tuple[DataLoader, DataLoader]]:
    """
    Create data loaders for training and validation

    Args:
        train_dataset: Training dataset
        val_dataset: Optional validation dataset
        batch_size: Batch size
        num_workers: Number of worker processes
        shuffle_train: Whether to shuffle training data

    Returns:
        train_loader or (train_loader, val_loader)
    """
    pin_memory = torch.cuda.is_available()

    train_loader = DataLoader(
        train_dataset,
        batch_size=batch_size,
        shuffle=shuffle_train,
        num_workers=num_workers,
        pin_memory=pin_memory
    )

    if val_dataset is not None:
        val_loader = DataLoader(
            val_dataset,
            batch_size=batch_size,
            shuffle=False,
            num_workers=num_workers,
            pin_memory=pin_memory
        )
        return train_loader, val_loader
    else:
        return train_loader
