"""End-to-end runs of the training and feature extraction scripts."""

import json
import sys

import cv2
import numpy as np
import pandas as pd
import pytest

from scripts import extract_features, train_autoencoder
from src.preprocessing import ImageProcessingSettings, load_settings, save_settings


@pytest.fixture
def image_dir(tmp_path, rng):
    directory = tmp_path / 'images'
    directory.mkdir()
    for i in range(8):
        image = rng.integers(0, 256, size=(20, 24)).astype(np.uint8)
        cv2.imwrite(str(directory / f'scan_{i}.png'), image)
    return directory


def run_script(module, monkeypatch, *args):
    monkeypatch.setattr(sys, 'argv', [module.__name__] + [str(a) for a in args])
    module.main()


def test_train_then_extract_vanilla(image_dir, tmp_path, monkeypatch):
    # Arrange
    run_dir = tmp_path / 'run'
    output = tmp_path / 'features.csv'

    # Act
    run_script(train_autoencoder, monkeypatch,
               '--image_dir', image_dir, '--width', 16, '--height', 16,
               '--model_type', 'vanilla', '--latent_dim', 4, '--epochs', 1,
               '--batch_size', 4, '--output_dir', run_dir, '--device', 'cpu')
    run_script(extract_features, monkeypatch,
               '--run_dir', run_dir, '--image_dir', image_dir,
               '--output', output, '--device', 'cpu')

    # Assert
    config = json.loads((run_dir / 'config.json').read_text())
    assert config['model_type'] == 'vanilla'
    settings = load_settings(run_dir / 'settings.yaml')
    assert settings.roi_shape == (16, 16)
    assert settings.index_dim == 1
    assert (run_dir / 'checkpoints' / 'best_model.pth').exists()
    assert (run_dir / 'train.log').exists()

    features = pd.read_csv(output)
    assert len(features) == 8
    assert list(features.columns) == ['image_path'] + [f'latent_{i}' for i in range(4)]
    assert features['image_path'].str.endswith('scan_0.png').iloc[0]


def test_train_then_extract_conv_with_channel_settings(image_dir, tmp_path, monkeypatch):
    # Arrange: settings file asking for a channel axis and samples last
    settings = ImageProcessingSettings(
        normalization='min-max', min_limit=0, max_limit=255,
        width=16, height=16, channel_dim=True, index_dim=2
    )
    settings_file = save_settings(settings, tmp_path / 'settings.yaml')
    run_dir = tmp_path / 'run'
    output = tmp_path / 'features.csv'

    # Act
    run_script(train_autoencoder, monkeypatch,
               '--image_dir', image_dir, '--settings', settings_file,
               '--model_type', 'conv', '--pooling_layer_num', 3, '--epochs', 1,
               '--batch_size', 4, '--output_dir', run_dir, '--device', 'cpu')
    run_script(extract_features, monkeypatch,
               '--run_dir', run_dir, '--image_dir', image_dir,
               '--output', output, '--device', 'cpu')

    # Assert
    assert load_settings(run_dir / 'settings.yaml') == settings
    features = pd.read_csv(output)
    assert features.shape == (8, 1 + 8 * 2 * 2)
