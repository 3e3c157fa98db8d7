"""
Fitting autoencoders on melted image tensors

fit_vanilla_autoencoder trains on the flat layout and
fit_2d_conv_autoencoder on the convolutional layout. Both accept a tensor
straight from melt_dim together with the settings used to build it.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np
import torch
import torch.nn as nn

from ..autoencoder.model import VanillaAutoencoder
from ..autoencoder.conv_model import ConvAutoencoder2D
from ..autoencoder.dataset import (
    MeltedImageDataset,
    split_train_val,
    create_data_loaders,
    to_model_input,
    from_model_output
)
from ..preprocessing import ImageProcessingSettings, NORMALIZATION_MIN_MAX
from .trainer import AutoencoderTrainer, get_optimizer, get_criterion


logger = logging.getLogger(__name__)


@dataclass
class EncoderModel:
    """Trained autoencoder together with its encoder half and training history"""
    autoencoder: nn.Module
    encoder: nn.Module
    history: Dict[str, list] = field(default_factory=dict)
    latent_dim: Optional[Union[int, Tuple[int, int]]] = None
    convolution: bool = False


def resolve_device(device: Optional[str] = None) -> str:
    """Pick a device, falling back to CPU when the requested one is missing"""
    if device is None:
        return 'cuda' if torch.cuda.is_available() else 'cpu'
    if device == 'cuda' and not torch.cuda.is_available():
        logger.warning("CUDA not available, using CPU")
        return 'cpu'
    if device == 'mps' and not torch.backends.mps.is_available():
        logger.warning("MPS not available, using CPU")
        return 'cpu'
    return device


def _fit(model: nn.Module,
         train_data: np.ndarray,
         settings: ImageProcessingSettings,
         convolution: bool,
         val_prop: float,
         epochs: int,
         batch_size: int,
         optimizer: str,
         loss: str,
         learning_rate: Optional[float],
         early_stopping_patience: int,
         min_delta: float,
         device: Optional[str],
         save_dir: Optional[Union[str, Path]],
         seed: Optional[int],
         num_workers: int) -> Dict[str, list]:
    if loss == 'binary_crossentropy' and settings.normalization != NORMALIZATION_MIN_MAX:
        logger.warning("binary_crossentropy expects inputs in [0, 1], "
                       "but settings use normalization=%r", settings.normalization)

    if seed is not None:
        torch.manual_seed(seed)

    train_part, val_part = split_train_val(train_data, settings, val_prop, convolution, seed)
    train_loader, val_loader = create_data_loaders(
        MeltedImageDataset(train_part, settings, convolution),
        MeltedImageDataset(val_part, settings, convolution),
        batch_size=batch_size,
        num_workers=num_workers
    )

    device = resolve_device(device)
    trainer = AutoencoderTrainer(
        model=model,
        train_loader=train_loader,
        val_loader=val_loader,
        criterion=get_criterion(loss),
        optimizer=get_optimizer(optimizer, model.parameters(), learning_rate),
        device=device,
        early_stopping_patience=early_stopping_patience,
        min_delta=min_delta,
        save_dir=save_dir
    )
    return trainer.train(num_epochs=epochs)


def fit_vanilla_autoencoder(train_data: np.ndarray,
                            settings: ImageProcessingSettings,
                            val_prop: float = 0.2,
                            epochs: int = 100,
                            batch_size: int = 32,
                            latent_dim: int = 32,
                            optimizer: str = 'adadelta',
                            loss: str = 'binary_crossentropy',
                            learning_rate: Optional[float] = None,
                            early_stopping_patience: int = 10,
                            min_delta: float = 1e-2,
                            device: Optional[str] = None,
                            save_dir: Optional[Union[str, Path]] = None,
                            seed: Optional[int] = 42,
                            num_workers: int = 0) -> EncoderModel:
    """
    Fit a dense autoencoder on a flat melted tensor

    Args:
        train_data: Flat tensor from melt_dim(..., convolution=False)
        settings: Settings used to melt train_data
        val_prop: Validation proportion (0 validates on the training data)
        epochs: Maximum number of epochs
        batch_size: Batch size
        latent_dim: Latent space dimension
        optimizer: Optimizer name
        loss: Loss name
        learning_rate: Optional learning rate override
        early_stopping_patience: Epochs without val loss improvement before stopping
        min_delta: Minimum val loss decrease counted as improvement
        device: Device, picked automatically when None
        save_dir: Optional directory for checkpoints and history
        seed: Random seed for the split and weight initialization
        num_workers: Data loader workers

    Returns:
        EncoderModel with the trained autoencoder and encoder
    """
    start_time = time.time()

    if seed is not None:
        torch.manual_seed(seed)
    model = VanillaAutoencoder(input_dim=settings.feature_count, latent_dim=latent_dim)

    history = _fit(model, train_data, settings, False, val_prop, epochs, batch_size,
                   optimizer, loss, learning_rate, early_stopping_patience, min_delta,
                   device, save_dir, seed, num_workers)

    logger.info("Vanilla autoencoder trained in %.1fs", time.time() - start_time)
    return EncoderModel(
        autoencoder=model,
        encoder=model.encoder,
        history=history,
        latent_dim=latent_dim,
        convolution=False
    )


def fit_2d_conv_autoencoder(train_data: np.ndarray,
                            settings: ImageProcessingSettings,
                            val_prop: float = 0.2,
                            epochs: int = 100,
                            batch_size: int = 32,
                            pooling_layer_num: int = 3,
                            kernel_size: int = 3,
                            pool_size: int = 2,
                            optimizer: str = 'adadelta',
                            loss: str = 'binary_crossentropy',
                            learning_rate: Optional[float] = None,
                            early_stopping_patience: int = 10,
                            min_delta: float = 1e-2,
                            device: Optional[str] = None,
                            save_dir: Optional[Union[str, Path]] = None,
                            seed: Optional[int] = 42,
                            num_workers: int = 0) -> EncoderModel:
    """
    Fit a 2D convolutional autoencoder on a convolutional melted tensor

    Args:
        train_data: Tensor from melt_dim(..., convolution=True)
        settings: Settings used to melt train_data
        pooling_layer_num: Number of pooling stages (3, 4 or 5)
        kernel_size: Convolution kernel size
        pool_size: Pooling / upsampling factor

    The remaining arguments behave as in fit_vanilla_autoencoder.

    Returns:
        EncoderModel whose latent_dim is the spatial shape of the latent maps
    """
    start_time = time.time()

    if seed is not None:
        torch.manual_seed(seed)
    model = ConvAutoencoder2D(
        input_shape=settings.roi_shape,
        pooling_layer_num=pooling_layer_num,
        kernel_size=kernel_size,
        pool_size=pool_size
    )
    logger.info("Conv autoencoder: %d parameters, latent maps %s",
                sum(p.numel() for p in model.parameters()), model.latent_shape)

    history = _fit(model, train_data, settings, True, val_prop, epochs, batch_size,
                   optimizer, loss, learning_rate, early_stopping_patience, min_delta,
                   device, save_dir, seed, num_workers)

    logger.info("Conv autoencoder trained in %.1fs", time.time() - start_time)
    return EncoderModel(
        autoencoder=model,
        encoder=model.encoder,
        history=history,
        latent_dim=model.latent_shape,
        convolution=True
    )


def _run_batches(module: nn.Module, inputs: torch.Tensor, batch_size: int) -> torch.Tensor:
    device = next(module.parameters()).device
    module.eval()
    outputs = []
    with torch.no_grad():
        for start in range(0, len(inputs), batch_size):
            batch = inputs[start:start + batch_size].to(device)
            result = module(batch)
            if isinstance(result, tuple):
                result = result[0]
            outputs.append(result.cpu())
    return torch.cat(outputs, dim=0)


def extract_features(encoder_model: EncoderModel,
                     data: np.ndarray,
                     settings: ImageProcessingSettings,
                     batch_size: int = 256) -> np.ndarray:
    """
    Encode a melted tensor into latent features

    Returns:
        Array of shape (N, n_features), one row per sample in melt order.
        Convolutional latent maps are flattened per sample.
    """
    inputs = to_model_input(data, settings, encoder_model.convolution)
    latent = _run_batches(encoder_model.encoder, inputs, batch_size)
    return latent.reshape(len(latent), -1).numpy()


def predict_images(encoder_model: EncoderModel,
                   data: np.ndarray,
                   settings: ImageProcessingSettings,
                   batch_size: int = 256) -> np.ndarray:
    """
    Run the autoencoder over a melted tensor

    Returns:
        Reconstructions in the same layout as data, ready for recon_dim
        and reverse_processing
    """
    inputs = to_model_input(data, settings, encoder_model.convolution)
    reconstructed = _run_batches(encoder_model.autoencoder, inputs, batch_size)
    return from_model_output(reconstructed, settings, encoder_model.convolution)
