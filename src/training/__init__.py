"""
Autoencoder training
"""

from .trainer import (
    AutoencoderTrainer,
    EarlyStopping,
    get_optimizer,
    get_criterion
)
from .fit import (
    EncoderModel,
    resolve_device,
    fit_vanilla_autoencoder,
    fit_2d_conv_autoencoder,
    extract_features,
    predict_images
)

__all__ = [
    'AutoencoderTrainer',
    'EarlyStopping',
    'get_optimizer',
    'get_criterion',
    'EncoderModel',
    'resolve_device',
    'fit_vanilla_autoencoder',
    'fit_2d_conv_autoencoder',
    'extract_features',
    'predict_images',
]
