"""Tests for forward preprocessing and value reversal."""

import numpy as np
import pytest
import torch

from src.preprocessing import (
    ConfigError,
    ShapeMismatchError,
    ImageProcessingSettings,
    clip_values,
    min_max_normalize,
    preprocess_image,
    preprocess_images,
    resize_image,
    reverse_processing
)


def test_constant_image_scenario(min_max_settings):
    # Arrange: 4x4 image of constant 5 already at target size
    image = np.full((4, 4), 5.0)

    # Act
    out = preprocess_image(image, min_max_settings)

    # Assert
    assert out.shape == (4, 4)
    np.testing.assert_allclose(out, np.full((4, 4), 0.5))


def test_missing_max_limit_raises_config_error():
    image = np.full((4, 4), 5.0)

    with pytest.raises(ConfigError):
        settings = ImageProcessingSettings(
            normalization='min-max', min_limit=0, max_limit=None, width=4, height=4
        )
        preprocess_image(image, settings)


def test_min_max_normalize_requires_both_limits():
    with pytest.raises(ConfigError):
        min_max_normalize(np.ones(3), 0, None)
    with pytest.raises(ConfigError):
        min_max_normalize(np.ones(3), None, 1)


def test_output_range_under_min_max(rng):
    settings = ImageProcessingSettings(
        normalization='min-max', min_limit=-100, max_limit=300, width=16, height=16
    )
    image = rng.uniform(-1000, 1000, size=(40, 30))

    out = preprocess_image(image, settings)

    assert out.shape == (16, 16)
    assert out.min() >= 0.0
    assert out.max() <= 1.0


def test_without_normalization_values_stay_in_clipped_range(rng):
    settings = ImageProcessingSettings(min_limit=-5, max_limit=5, width=8, height=8)
    image = rng.normal(0, 10, size=(8, 8))

    out = preprocess_image(image, settings)

    np.testing.assert_allclose(out, np.clip(image, -5, 5))


def test_resize_targets_width_then_height():
    image = np.arange(12, dtype=float).reshape(3, 4)

    out = resize_image(image, width=6, height=10)

    assert out.shape == (6, 10)


def test_resize_keeps_images_already_at_target_size(rng):
    image = rng.normal(size=(5, 7))

    out = resize_image(image, width=5, height=7)

    np.testing.assert_array_equal(out, image)
    assert out is not image


def test_resize_of_constant_image_stays_constant():
    out = resize_image(np.full((10, 20), 3.0), width=4, height=6)

    np.testing.assert_allclose(out, np.full((4, 6), 3.0))


def test_roi_crop_selects_indices():
    image = np.arange(16, dtype=float).reshape(4, 4)
    settings = ImageProcessingSettings(width=4, height=4, roi_width=[1, 2], roi_height=[0, 3])

    out = preprocess_image(image, settings)

    np.testing.assert_array_equal(out, [[4.0, 7.0], [8.0, 11.0]])


def test_integer_images_are_processed_as_float():
    image = np.full((4, 4), 200, dtype=np.uint16)
    settings = ImageProcessingSettings(
        normalization='min-max', min_limit=0, max_limit=400, width=4, height=4
    )

    out = preprocess_image(image, settings)

    assert out.dtype == np.float64
    np.testing.assert_allclose(out, 0.5)


def test_nan_positions_become_zero(rng):
    settings = ImageProcessingSettings(width=6, height=5)
    clean = rng.uniform(1, 2, size=(6, 5))
    holes = np.zeros_like(clean, dtype=bool)
    holes[[0, 2, 5], [4, 1, 0]] = True
    dirty = clean.copy()
    dirty[holes] = np.nan

    out_clean = preprocess_image(clean, settings)
    out_dirty = preprocess_image(dirty, settings)

    assert not np.isnan(out_dirty).any()
    np.testing.assert_array_equal(out_dirty[holes], 0.0)
    np.testing.assert_array_equal(out_dirty[~holes], out_clean[~holes])


def test_nan_is_sanitized_before_clipping():
    # A zeroed NaN still gets clipped and normalized like any other zero
    settings = ImageProcessingSettings(
        normalization='min-max', min_limit=10, max_limit=20, width=2, height=2
    )
    image = np.array([[np.nan, 15.0], [20.0, 30.0]])

    out = preprocess_image(image, settings)

    np.testing.assert_allclose(out, [[0.0, 0.5], [1.0, 1.0]])


def test_clipping_is_idempotent(rng):
    x = rng.normal(0, 50, size=(10, 10))

    once = clip_values(x, min_limit=-20, max_limit=35)
    twice = clip_values(once, min_limit=-20, max_limit=35)

    np.testing.assert_array_equal(once, twice)
    assert once.min() >= -20
    assert once.max() <= 35


def test_clipping_with_one_open_bound():
    x = np.array([-5.0, 0.0, 5.0])

    np.testing.assert_array_equal(clip_values(x, max_limit=1), [-5.0, 0.0, 1.0])
    np.testing.assert_array_equal(clip_values(x, min_limit=-1), [-1.0, 0.0, 5.0])
    np.testing.assert_array_equal(clip_values(x), x)


def test_clipping_does_not_modify_input():
    x = np.array([-5.0, 0.0, 5.0])
    clip_values(x, min_limit=-1, max_limit=1)
    np.testing.assert_array_equal(x, [-5.0, 0.0, 5.0])


def test_channel_image_is_accepted_when_channel_dim_set():
    settings = ImageProcessingSettings(width=4, height=4, channel_dim=True)

    out = preprocess_image(np.ones((4, 4, 1)), settings)

    assert out.shape == (4, 4)


@pytest.mark.parametrize('channel_dim, shape', [
    (False, (4, 4, 1)),
    (False, (16,)),
    (True, (4, 4)),
    (True, (4, 4, 3)),
])
def test_rank_mismatch_raises(channel_dim, shape):
    settings = ImageProcessingSettings(width=4, height=4, channel_dim=channel_dim)

    with pytest.raises(ShapeMismatchError):
        preprocess_image(np.ones(shape), settings)


def test_empty_image_raises():
    with pytest.raises(ShapeMismatchError):
        preprocess_image(np.ones((0, 4)), ImageProcessingSettings(width=4, height=4))


def test_preprocess_does_not_modify_input(min_max_settings):
    image = np.array([[np.nan, 50.0, -3.0, 1.0]] * 4)
    original = image.copy()

    preprocess_image(image, min_max_settings)

    np.testing.assert_array_equal(image, original)


@pytest.mark.parametrize('n_jobs', [1, 2])
def test_batch_preprocessing_preserves_order(min_max_settings, n_jobs):
    images = [np.full((4, 4), float(v)) for v in (1, 4, 9, 2)]

    out = preprocess_images(images, min_max_settings, n_jobs=n_jobs)

    assert [float(o[0, 0]) for o in out] == pytest.approx([0.1, 0.4, 0.9, 0.2])


@pytest.mark.parametrize('value', [-50.0, -1.0, 0.0, 3.3, 7.0, 10.0, 123.4])
def test_reverse_recovers_clamped_value(min_max_settings, value):
    lo, hi = min_max_settings.min_limit, min_max_settings.max_limit
    normalized = min_max_normalize(np.clip(value, lo, hi), lo, hi)

    restored = reverse_processing(normalized, min_max_settings)

    assert restored == pytest.approx(min(max(value, lo), hi))


def test_reverse_inverts_preprocessing_for_in_range_images(rng):
    settings = ImageProcessingSettings(
        normalization='min-max', min_limit=-1000, max_limit=400, width=8, height=8
    )
    image = rng.uniform(-1000, 400, size=(8, 8))

    restored = reverse_processing(preprocess_image(image, settings), settings)

    np.testing.assert_allclose(restored, image, atol=1e-9)


def test_reverse_is_identity_without_normalization():
    settings = ImageProcessingSettings(min_limit=0, max_limit=10)
    x = np.array([0.2, 0.7])

    assert reverse_processing(x, settings) is x


def test_reverse_accepts_torch_tensors(min_max_settings):
    x = torch.tensor([0.0, 0.25, 1.0])

    restored = reverse_processing(x, min_max_settings)

    assert torch.allclose(restored, torch.tensor([0.0, 2.5, 10.0]))
