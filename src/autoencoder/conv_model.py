"""
2D Convolutional Autoencoder for radiology images

Architecture:
    - Encoder: Conv2d + MaxPool2d stages (16, 8, 8 [, 8 [, 8]] filters)
    - Decoder: mirrored Conv2d + Upsample stages, then Conv2d(1) + Sigmoid
    - Input: convolutional layout from melt_dim, moved to channel-first
      (batch, 1, width, height)
"""

import torch
import torch.nn as nn
from typing import Tuple

from .model import VanillaAutoencoder


class ConvBlock(nn.Module):
    """
    Convolution block with optional resampling

    Architecture: Conv2d('same') -> ReLU -> [MaxPool2d | Upsample]
    """

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        kernel_size: int = 3,
        pool_size: int = 2,
        mode: str = 'down'
    ):
        super(ConvBlock, self).__init__()

        layers = [
            nn.Conv2d(in_channels, out_channels, kernel_size=kernel_size, padding='same'),
            nn.ReLU(inplace=True)
        ]

        if mode == 'down':
            layers.append(nn.MaxPool2d(kernel_size=pool_size, stride=pool_size))
        elif mode == 'up':
            layers.append(nn.Upsample(scale_factor=pool_size, mode='nearest'))
        else:
            raise ValueError(f"Unknown block mode: {mode}")

        self.block = nn.Sequential(*layers)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.block(x)


class ConvAutoencoder2D(nn.Module):
    """
    Convolutional autoencoder with 3 to 5 pooling stages

    Each pooling stage divides both spatial dimensions by pool_size, so
    input dimensions must be divisible by pool_size ** pooling_layer_num.

    Args:
        input_shape: Spatial shape of one image (len(roi_width), len(roi_height))
        pooling_layer_num: Number of pooling stages (3, 4 or 5)
        kernel_size: Convolution kernel size
        pool_size: Pooling / upsampling factor

    Example:
        >>> model = ConvAutoencoder2D(input_shape=(64, 64), pooling_layer_num=3)
        >>> images = torch.rand(4, 1, 64, 64)
        >>> reconstructed, latent = model(images)
        >>> print(reconstructed.shape, latent.shape)
        torch.Size([4, 1, 64, 64]) torch.Size([4, 8, 8, 8])
    """

    def __init__(
        self,
        input_shape: Tuple[int, int],
        pooling_layer_num: int = 3,
        kernel_size: int = 3,
        pool_size: int = 2
    ):
        super(ConvAutoencoder2D, self).__init__()

        if pooling_layer_num not in (3, 4, 5):
            raise ValueError(f"pooling_layer_num must be 3, 4 or 5, got {pooling_layer_num}")
        if pool_size < 1 or kernel_size < 1:
            raise ValueError("kernel_size and pool_size must be positive")

        factor = pool_size ** pooling_layer_num
        width, height = input_shape
        if width % factor != 0 or height % factor != 0:
            raise ValueError(
                f"Input shape {tuple(input_shape)} is not divisible by "
                f"pool_size ** pooling_layer_num = {factor}"
            )

        self.input_shape = (width, height)
        self.pooling_layer_num = pooling_layer_num
        self.kernel_size = kernel_size
        self.pool_size = pool_size
        self.latent_shape = (width // factor, height // factor)

        self.encoder = self._build_encoder()
        self.decoder = self._build_decoder()

    def _build_encoder(self) -> nn.Sequential:
        """Build encoder: 16 -> 8 -> 8 filters, plus extra 8-filter stages"""
        channels = [1, 16, 8, 8] + [8] * (self.pooling_layer_num - 3)
        blocks = [
            ConvBlock(channels[i], channels[i + 1], self.kernel_size, self.pool_size, mode='down')
            for i in range(self.pooling_layer_num)
        ]
        return nn.Sequential(*blocks)

    def _build_decoder(self) -> nn.Sequential:
        """Build decoder (mirror of encoder) ending in a sigmoid image"""
        channels = [8] * (self.pooling_layer_num - 1) + [16]
        blocks = []
        prev = 8
        for out in channels:
            blocks.append(ConvBlock(prev, out, self.kernel_size, self.pool_size, mode='up'))
            prev = out

        blocks.extend([
            nn.Conv2d(prev, 1, kernel_size=self.kernel_size, padding='same'),
            nn.Sigmoid()
        ])
        return nn.Sequential(*blocks)

    def encode(self, x: torch.Tensor) -> torch.Tensor:
        """
        Encode images to latent feature maps

        Args:
            x: Input images (batch, 1, width, height)

        Returns:
            Latent maps (batch, 8, *latent_shape)
        """
        return self.encoder(x)

    def decode(self, z: torch.Tensor) -> torch.Tensor:
        """Decode latent maps to images (batch, 1, width, height)"""
        return self.decoder(z)

    def forward(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        latent = self.encode(x)
        reconstructed = self.decode(latent)
        return reconstructed, latent


def get_model(model_type: str = 'vanilla', **kwargs) -> nn.Module:
    """
    Factory function to create autoencoder models

    Args:
        model_type: 'vanilla' or 'conv'
        **kwargs: Model parameters

    Returns:
        Autoencoder model instance

    Example:
        >>> model = get_model('vanilla', input_dim=784, latent_dim=32)
        >>> model = get_model('conv', input_shape=(64, 64), pooling_layer_num=4)
    """
    if model_type in ['vanilla', 'dense']:
        return VanillaAutoencoder(**kwargs)
    elif model_type in ['conv', 'conv2d']:
        return ConvAutoencoder2D(**kwargs)
    else:
        raise ValueError(f"Unknown model type: {model_type}. Choose 'vanilla' or 'conv'")
