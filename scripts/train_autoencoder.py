"""
Training script for radiology image autoencoders

Loads grayscale images from a directory, preprocesses them with the given
settings, melts them into the flat or convolutional layout and trains a
vanilla or 2D convolutional autoencoder.

Usage:
    python scripts/train_autoencoder.py --image_dir path/to/images \
                                        --settings settings.yaml \
                                        --model_type conv \
                                        --output_dir results/conv_autoencoder \
                                        --epochs 100
"""

import sys
from pathlib import Path
import argparse
import json

import numpy as np
import torch

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.data import load_image_paths_from_directory, load_images
from src.preprocessing import (
    ImageProcessingSettings,
    load_settings,
    save_settings,
    preprocess_images,
    melt_dim
)
from src.training import fit_vanilla_autoencoder, fit_2d_conv_autoencoder, resolve_device
from src.utils import setup_logger, get_timestamp


def build_settings(args) -> ImageProcessingSettings:
    """Settings from a YAML file, or from command-line options"""
    if args.settings:
        settings = load_settings(args.settings)
    else:
        settings = ImageProcessingSettings(
            normalization=args.normalization,
            min_limit=args.min_limit,
            max_limit=args.max_limit,
            width=args.width,
            height=args.height
        )
    # Both autoencoders consume sample-major tensors
    if settings.index_dim is None:
        settings = settings.replace(index_dim=1)
    return settings


def main():
    parser = argparse.ArgumentParser(description='Train an autoencoder on radiology images')

    # Data arguments
    parser.add_argument('--image_dir', type=str, required=True,
                        help='Directory containing grayscale images (.png, .tif, .npy, ...)')
    parser.add_argument('--val_prop', type=float, default=0.2,
                        help='Validation proportion, 0 validates on training data (default: 0.2)')

    # Preprocessing arguments
    parser.add_argument('--settings', type=str, default=None,
                        help='YAML settings file (overrides the options below)')
    parser.add_argument('--normalization', type=str, default='min-max',
                        choices=['none', 'min-max'],
                        help='Normalization (default: min-max)')
    parser.add_argument('--min_limit', type=float, default=0.0,
                        help='Lower clip bound (default: 0)')
    parser.add_argument('--max_limit', type=float, default=255.0,
                        help='Upper clip bound (default: 255)')
    parser.add_argument('--width', type=int, default=64,
                        help='Resize width (default: 64)')
    parser.add_argument('--height', type=int, default=64,
                        help='Resize height (default: 64)')
    parser.add_argument('--n_jobs', type=int, default=1,
                        help='Parallel preprocessing workers (default: 1)')

    # Model arguments
    parser.add_argument('--model_type', type=str, default='vanilla',
                        choices=['vanilla', 'conv'],
                        help='Autoencoder type (default: vanilla)')
    parser.add_argument('--latent_dim', type=int, default=32,
                        help='Latent dimension of the vanilla autoencoder (default: 32)')
    parser.add_argument('--pooling_layer_num', type=int, default=3, choices=[3, 4, 5],
                        help='Pooling stages of the conv autoencoder (default: 3)')
    parser.add_argument('--kernel_size', type=int, default=3,
                        help='Conv kernel size (default: 3)')
    parser.add_argument('--pool_size', type=int, default=2,
                        help='Pooling factor (default: 2)')

    # Training arguments
    parser.add_argument('--epochs', type=int, default=100,
                        help='Maximum number of epochs (default: 100)')
    parser.add_argument('--batch_size', type=int, default=32,
                        help='Batch size (default: 32)')
    parser.add_argument('--optimizer', type=str, default='adadelta',
                        choices=['adadelta', 'adam', 'rmsprop', 'sgd'],
                        help='Optimizer (default: adadelta)')
    parser.add_argument('--loss', type=str, default='binary_crossentropy',
                        choices=['binary_crossentropy', 'mse'],
                        help='Reconstruction loss (default: binary_crossentropy)')
    parser.add_argument('--learning_rate', type=float, default=None,
                        help='Learning rate (default: optimizer default)')
    parser.add_argument('--patience', type=int, default=10,
                        help='Early stopping patience (default: 10)')

    # Output arguments
    parser.add_argument('--output_dir', type=str, default=None,
                        help='Output directory (default: results/<model_type>_<timestamp>)')
    parser.add_argument('--device', type=str, default='cuda',
                        choices=['cuda', 'cpu', 'mps'],
                        help='Device to use (default: cuda)')
    parser.add_argument('--seed', type=int, default=42,
                        help='Random seed (default: 42)')

    args = parser.parse_args()

    output_dir = Path(args.output_dir or f'results/{args.model_type}_{get_timestamp()}')
    output_dir.mkdir(parents=True, exist_ok=True)
    logger = setup_logger('src', log_file=output_dir / 'train.log')

    torch.manual_seed(args.seed)
    np.random.seed(args.seed)
    args.device = resolve_device(args.device)

    logger.info("Configuration:")
    for arg, value in vars(args).items():
        logger.info("  %s: %s", arg, value)

    settings = build_settings(args)
    convolution = args.model_type == 'conv'

    image_paths = load_image_paths_from_directory(args.image_dir)
    if not image_paths:
        logger.error("No images found in %s", args.image_dir)
        sys.exit(1)
    logger.info("Found %d images in %s", len(image_paths), args.image_dir)

    images = load_images(image_paths, channel_dim=settings.channel_dim)
    processed = preprocess_images(images, settings, n_jobs=args.n_jobs)
    train_data = melt_dim(processed, settings, convolution=convolution)
    logger.info("Training tensor shape: %s", train_data.shape)

    # Save configuration
    with open(output_dir / 'config.json', 'w') as f:
        json.dump(vars(args), f, indent=2)
    save_settings(settings, output_dir / 'settings.yaml')

    common = dict(
        val_prop=args.val_prop,
        epochs=args.epochs,
        batch_size=args.batch_size,
        optimizer=args.optimizer,
        loss=args.loss,
        learning_rate=args.learning_rate,
        early_stopping_patience=args.patience,
        device=args.device,
        save_dir=output_dir / 'checkpoints',
        seed=args.seed
    )

    if convolution:
        encoder_model = fit_2d_conv_autoencoder(
            train_data, settings,
            pooling_layer_num=args.pooling_layer_num,
            kernel_size=args.kernel_size,
            pool_size=args.pool_size,
            **common
        )
    else:
        encoder_model = fit_vanilla_autoencoder(
            train_data, settings,
            latent_dim=args.latent_dim,
            **common
        )

    logger.info("Latent dimension: %s", encoder_model.latent_dim)
    logger.info("Results saved to: %s", output_dir)


if __name__ == '__main__':
    main()
