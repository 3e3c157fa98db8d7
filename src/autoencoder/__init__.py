"""
Autoencoders for radiology image feature extraction

This module provides:
1. A dense autoencoder for the flat layout
2. A 2D convolutional autoencoder for the convolutional layout
3. Dataset plumbing from melted tensors to PyTorch batches
"""

from .model import VanillaAutoencoder
from .conv_model import (
    ConvBlock,
    ConvAutoencoder2D,
    get_model
)
from .dataset import (
    MeltedImageDataset,
    to_model_input,
    from_model_output,
    split_train_val,
    create_data_loaders
)

__all__ = [
    'VanillaAutoencoder',
    'ConvBlock',
    'ConvAutoencoder2D',
    'get_model',
    'MeltedImageDataset',
    'to_model_input',
    'from_model_output',
    'split_train_val',
    'create_data_loaders',
]
