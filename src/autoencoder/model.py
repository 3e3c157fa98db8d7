"""
Dense (vanilla) autoencoder for flat image vectors

The model takes the flat layout produced by melt_dim (sample-major) and
compresses each min-max normalized image into a small latent vector.
"""

import torch
import torch.nn as nn
from typing import Tuple


class VanillaAutoencoder(nn.Module):
    """
    Single hidden layer autoencoder

    Architecture:
        Encoder: input_dim -> latent_dim (ReLU)
        Decoder: latent_dim -> input_dim (Sigmoid)

    The sigmoid output matches inputs normalized to [0, 1], so the model is
    trained with binary cross-entropy by default.

    Args:
        input_dim: Pixels per image (len(roi_width) * len(roi_height))
        latent_dim: Latent space dimension

    Example:
        >>> model = VanillaAutoencoder(input_dim=784, latent_dim=32)
        >>> images = torch.rand(16, 784)
        >>> reconstructed, latent = model(images)
        >>> print(reconstructed.shape, latent.shape)
        torch.Size([16, 784]) torch.Size([16, 32])
    """

    def __init__(self, input_dim: int, latent_dim: int = 32):
        super(VanillaAutoencoder, self).__init__()

        if input_dim <= 0 or latent_dim <= 0:
            raise ValueError(
                f"input_dim and latent_dim must be positive, got {input_dim} and {latent_dim}"
            )

        self.input_dim = input_dim
        self.latent_dim = latent_dim

        self.encoder = nn.Sequential(
            nn.Linear(input_dim, latent_dim),
            nn.ReLU()
        )
        self.decoder = nn.Sequential(
            nn.Linear(latent_dim, input_dim),
            nn.Sigmoid()
        )

    def encode(self, x: torch.Tensor) -> torch.Tensor:
        """
        Encode flat images to latent space

        Args:
            x: Input images (batch_size, input_dim)

        Returns:
            Latent representation (batch_size, latent_dim)
        """
        return self.encoder(x)

    def decode(self, z: torch.Tensor) -> torch.Tensor:
        """Decode latent vectors to flat images in [0, 1]"""
        return self.decoder(z)

    def forward(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        latent = self.encode(x)
        reconstructed = self.decode(latent)
        return reconstructed, latent
