"""
Extract latent features with a trained autoencoder

Reads the config.json, settings.yaml and checkpoint written by
train_autoencoder.py, encodes every image in a directory and writes one
row of latent features per image to a CSV file.

Usage:
    python scripts/extract_features.py --run_dir results/conv_autoencoder \
                                       --image_dir path/to/images \
                                       --output features.csv
"""

import sys
from pathlib import Path
import argparse
import json

import pandas as pd
import torch

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.autoencoder import get_model
from src.data import load_image_paths_from_directory, load_images
from src.preprocessing import load_settings, preprocess_images, melt_dim
from src.training import EncoderModel, extract_features, resolve_device
from src.utils import setup_logger


def load_encoder_model(run_dir: Path, settings, checkpoint: str, device: str) -> EncoderModel:
    """Rebuild the trained autoencoder of a training run"""
    with open(run_dir / 'config.json', 'r') as f:
        config = json.load(f)

    convolution = config['model_type'] == 'conv'
    if convolution:
        model = get_model('conv',
                          input_shape=settings.roi_shape,
                          pooling_layer_num=config['pooling_layer_num'],
                          kernel_size=config['kernel_size'],
                          pool_size=config['pool_size'])
        latent_dim = model.latent_shape
    else:
        model = get_model('vanilla',
                          input_dim=settings.feature_count,
                          latent_dim=config['latent_dim'])
        latent_dim = config['latent_dim']

    state = torch.load(run_dir / 'checkpoints' / checkpoint, map_location=device)
    model.load_state_dict(state['model_state_dict'])
    model.to(device)

    return EncoderModel(
        autoencoder=model,
        encoder=model.encoder,
        history=state.get('history', {}),
        latent_dim=latent_dim,
        convolution=convolution
    )


def main():
    parser = argparse.ArgumentParser(description='Extract autoencoder features from images')
    parser.add_argument('--run_dir', type=str, required=True,
                        help='Output directory of train_autoencoder.py')
    parser.add_argument('--image_dir', type=str, required=True,
                        help='Directory containing images to encode')
    parser.add_argument('--output', type=str, default='features.csv',
                        help='Output CSV file (default: features.csv)')
    parser.add_argument('--checkpoint', type=str, default='best_model.pth',
                        help='Checkpoint file name (default: best_model.pth)')
    parser.add_argument('--batch_size', type=int, default=256,
                        help='Batch size (default: 256)')
    parser.add_argument('--n_jobs', type=int, default=1,
                        help='Parallel preprocessing workers (default: 1)')
    parser.add_argument('--device', type=str, default='cuda',
                        choices=['cuda', 'cpu', 'mps'],
                        help='Device to use (default: cuda)')
    args = parser.parse_args()

    logger = setup_logger('src')
    run_dir = Path(args.run_dir)
    device = resolve_device(args.device)

    settings = load_settings(run_dir / 'settings.yaml')
    encoder_model = load_encoder_model(run_dir, settings, args.checkpoint, device)

    image_paths = load_image_paths_from_directory(args.image_dir)
    if not image_paths:
        logger.error("No images found in %s", args.image_dir)
        sys.exit(1)

    processed = preprocess_images(
        load_images(image_paths, channel_dim=settings.channel_dim), settings, n_jobs=args.n_jobs
    )
    data = melt_dim(processed, settings, convolution=encoder_model.convolution)
    features = extract_features(encoder_model, data, settings, batch_size=args.batch_size)

    df = pd.DataFrame(features, columns=[f'latent_{i}' for i in range(features.shape[1])])
    df.insert(0, 'image_path', [str(p) for p in image_paths])
    df.to_csv(args.output, index=False)
    logger.info("Saved %d x %d features to %s", features.shape[0], features.shape[1], args.output)


if __name__ == '__main__':
    main()
