"""Tests for ImageProcessingSettings construction, validation and persistence."""

import dataclasses

import numpy as np
import pytest

from src.preprocessing import (
    ConfigError,
    ImageProcessingSettings,
    set_image_processing,
    save_settings,
    load_settings,
    NORMALIZATION_NONE,
    NORMALIZATION_MIN_MAX
)


def test_defaults_cover_full_extent():
    settings = ImageProcessingSettings()

    assert settings.normalization == NORMALIZATION_NONE
    assert (settings.width, settings.height) == (28, 28)
    assert settings.roi_width == tuple(range(28))
    assert settings.roi_height == tuple(range(28))
    assert settings.channel_dim is False
    assert settings.index_dim is None
    assert settings.roi_shape == (28, 28)
    assert settings.feature_count == 784


def test_roi_is_stored_as_tuple():
    settings = ImageProcessingSettings(width=8, height=6, roi_width=[2, 3, 4], roi_height=range(1, 5))

    assert settings.roi_width == (2, 3, 4)
    assert settings.roi_height == (1, 2, 3, 4)
    assert settings.roi_shape == (3, 4)
    assert settings.feature_count == 12


def test_settings_are_immutable():
    settings = ImageProcessingSettings()

    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.width = 10


def test_min_max_alias_is_accepted():
    settings = ImageProcessingSettings(normalization='MinMaxNorm', min_limit=0, max_limit=1)
    assert settings.normalization == NORMALIZATION_MIN_MAX


def test_integral_float_dimensions_are_coerced():
    settings = ImageProcessingSettings(width=32.0, height=16.0)
    assert (settings.width, settings.height) == (32, 16)
    assert isinstance(settings.width, int)


@pytest.mark.parametrize('options', [
    {'width': 'wide'},
    {'height': None},
    {'width': 0},
    {'height': -4},
    {'width': 2.5},
    {'width': True},
    {'normalization': 'z-score'},
    {'max_limit': 'high'},
    {'min_limit': [0]},
    {'normalization': 'min-max', 'min_limit': 0},
    {'normalization': 'min-max', 'max_limit': 10},
    {'normalization': 'min-max', 'min_limit': 5, 'max_limit': 5},
    {'min_limit': 10, 'max_limit': 0},
    {'width': 4, 'roi_width': [0, 4]},
    {'height': 4, 'roi_height': [-1]},
    {'roi_width': []},
    {'roi_width': [0.5]},
    {'roi_width': '012'},
    {'index_dim': 0},
    {'index_dim': 3},
    {'channel_dim': 'yes'},
])
def test_invalid_options_raise_config_error(options):
    with pytest.raises(ConfigError):
        ImageProcessingSettings(**options)


def test_config_error_is_a_value_error():
    with pytest.raises(ValueError):
        ImageProcessingSettings(width=-1)


def test_set_image_processing_matches_constructor():
    options = dict(normalization='min-max', min_limit=-1000, max_limit=400,
                   width=64, height=32, index_dim=2)
    assert set_image_processing(**options) == ImageProcessingSettings(**options)


def test_replace_revalidates():
    settings = ImageProcessingSettings(width=8, height=8)

    assert settings.replace(index_dim=1).index_dim == 1
    assert settings.index_dim is None
    with pytest.raises(ConfigError):
        settings.replace(index_dim=5)


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigError):
        ImageProcessingSettings.from_dict({'width': 8, 'depth': 3})


def test_yaml_round_trip(tmp_path):
    settings = ImageProcessingSettings(
        normalization='min-max', min_limit=-1000.0, max_limit=400.0,
        width=16, height=12, roi_width=range(2, 14), roi_height=[0, 5, 11],
        channel_dim=True, index_dim=2
    )

    path = save_settings(settings, tmp_path / 'run' / 'settings.yaml')

    assert path.exists()
    assert load_settings(path) == settings


def test_load_settings_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path / 'missing.yaml')


def test_load_settings_invalid_content(tmp_path):
    path = tmp_path / 'settings.yaml'
    path.write_text("normalization: min-max\nmax_limit: 1\n")

    with pytest.raises(ConfigError):
        load_settings(path)


def test_numpy_scalars_are_stored_as_builtin_types():
    settings = ImageProcessingSettings(
        normalization='min-max', min_limit=np.float64(-1000), max_limit=np.float32(400),
        width=np.int64(8), height=np.float32(8), index_dim=np.int64(2)
    )

    assert type(settings.min_limit) is float
    assert type(settings.max_limit) is float
    assert type(settings.width) is int
    assert type(settings.height) is int
    assert type(settings.index_dim) is int
    assert settings.max_limit == 400.0


def test_yaml_round_trip_with_numpy_limits(tmp_path):
    # Arrange: limits computed from data arrive as numpy scalars
    data = np.array([-1000.0, 400.0], dtype=np.float32)
    settings = ImageProcessingSettings(
        normalization='min-max', min_limit=data.min(), max_limit=data.max(),
        width=np.int64(8), height=8, roi_width=np.arange(2, 6), index_dim=1
    )

    # Act
    path = save_settings(settings, tmp_path / 'settings.yaml')

    # Assert
    loaded = load_settings(path)
    assert loaded == settings
    assert loaded.roi_width == (2, 3, 4, 5)
