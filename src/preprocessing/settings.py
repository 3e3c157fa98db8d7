"""
Image processing settings

A single immutable descriptor carries every parameter needed to
preprocess a batch of images and to reverse that preprocessing later.
It is validated once, at construction, and then passed explicitly to
every pipeline call.
"""

import numbers
from dataclasses import dataclass, asdict, replace as dataclass_replace
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import yaml

from .exceptions import ConfigError


NORMALIZATION_NONE = 'none'
NORMALIZATION_MIN_MAX = 'min-max'

# Accepted spellings for each normalization kind
_NORMALIZATION_ALIASES = {
    None: NORMALIZATION_NONE,
    'none': NORMALIZATION_NONE,
    'min-max': NORMALIZATION_MIN_MAX,
    'minmax': NORMALIZATION_MIN_MAX,
    'MinMaxNorm': NORMALIZATION_MIN_MAX,
}

INDEX_DIM_FIRST = 1
INDEX_DIM_LAST = 2


def _is_number(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _as_dimension(name: str, value) -> int:
    integral = isinstance(value, numbers.Integral) or (
        isinstance(value, numbers.Real) and float(value).is_integer())
    if isinstance(value, bool) or not integral:
        raise ConfigError(f"{name} should be a single integer value, got {value!r}")
    value = int(value)
    if value <= 0:
        raise ConfigError(f"{name} should be positive, got {value}")
    return value


def _as_roi(name: str, roi, extent: int) -> Tuple[int, ...]:
    if roi is None:
        return tuple(range(extent))
    if isinstance(roi, (str, bytes)):
        raise ConfigError(f"{name} should be a sequence of integer indices")

    indices = []
    for idx in roi:
        if not isinstance(idx, numbers.Integral) or isinstance(idx, bool):
            raise ConfigError(f"{name} should only hold integers, got {idx!r}")
        if not 0 <= idx < extent:
            raise ConfigError(f"{name} index {idx} is outside [0, {extent})")
        indices.append(int(idx))

    if not indices:
        raise ConfigError(f"{name} should not be empty")
    return tuple(indices)


@dataclass(frozen=True)
class ImageProcessingSettings:
    """
    Immutable preprocessing configuration

    Args:
        normalization: 'none' or 'min-max' ('MinMaxNorm' is accepted too)
        max_limit: Upper clip bound, required for min-max normalization
        min_limit: Lower clip bound, required for min-max normalization
        width: Target width after resizing (first array axis)
        height: Target height after resizing (second array axis)
        roi_width: 0-based indices kept along the width axis (default: all)
        roi_height: 0-based indices kept along the height axis (default: all)
        channel_dim: Whether input images carry a trailing channel axis of size 1
        index_dim: Sample axis of melted tensors, 1 (first) or 2 (last)

    Example:
        >>> settings = ImageProcessingSettings(
        ...     normalization='min-max', min_limit=-1000, max_limit=400,
        ...     width=64, height=64, index_dim=1
        ... )
        >>> settings.roi_shape
        (64, 64)
    """

    normalization: Optional[str] = None
    max_limit: Optional[float] = None
    min_limit: Optional[float] = None
    width: int = 28
    height: int = 28
    roi_width: Optional[Sequence[int]] = None
    roi_height: Optional[Sequence[int]] = None
    channel_dim: bool = False
    index_dim: Optional[int] = None

    def __post_init__(self):
        # Frozen dataclass: normalized values are written through object.__setattr__
        if self.normalization not in _NORMALIZATION_ALIASES:
            raise ConfigError(
                f"Unknown normalization: {self.normalization!r}. "
                f"Choose from {[NORMALIZATION_NONE, NORMALIZATION_MIN_MAX]}"
            )
        object.__setattr__(self, 'normalization', _NORMALIZATION_ALIASES[self.normalization])

        for name in ('max_limit', 'min_limit'):
            value = getattr(self, name)
            if value is not None and not _is_number(value):
                raise ConfigError(f"{name} should be None or a single numeric value")
            if value is not None:
                object.__setattr__(self, name, float(value))

        if self.normalization == NORMALIZATION_MIN_MAX and (
                self.max_limit is None or self.min_limit is None):
            raise ConfigError("min-max normalization requires both min_limit and max_limit")

        if self.max_limit is not None and self.min_limit is not None \
                and not self.max_limit > self.min_limit:
            raise ConfigError(
                f"max_limit ({self.max_limit}) should be greater than min_limit ({self.min_limit})"
            )

        width = _as_dimension('width', self.width)
        height = _as_dimension('height', self.height)
        object.__setattr__(self, 'width', width)
        object.__setattr__(self, 'height', height)
        object.__setattr__(self, 'roi_width', _as_roi('roi_width', self.roi_width, width))
        object.__setattr__(self, 'roi_height', _as_roi('roi_height', self.roi_height, height))

        if self.channel_dim is None:
            object.__setattr__(self, 'channel_dim', False)
        elif not isinstance(self.channel_dim, bool):
            raise ConfigError("channel_dim should be a boolean marker")

        if self.index_dim is not None and (
                isinstance(self.index_dim, bool)
                or self.index_dim not in (INDEX_DIM_FIRST, INDEX_DIM_LAST)):
            raise ConfigError(
                f"index_dim should be None, {INDEX_DIM_FIRST} or {INDEX_DIM_LAST}, "
                f"got {self.index_dim!r}"
            )
        if self.index_dim is not None:
            object.__setattr__(self, 'index_dim', int(self.index_dim))

    @property
    def roi_shape(self) -> Tuple[int, int]:
        """Shape of one processed image"""
        return len(self.roi_width), len(self.roi_height)

    @property
    def feature_count(self) -> int:
        """Number of pixels per processed image"""
        return len(self.roi_width) * len(self.roi_height)

    def replace(self, **changes) -> 'ImageProcessingSettings':
        """Return a new validated descriptor with some fields changed"""
        return dataclass_replace(self, **changes)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['roi_width'] = list(self.roi_width)
        data['roi_height'] = list(self.roi_height)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'ImageProcessingSettings':
        if not isinstance(data, dict):
            raise ConfigError(f"Settings should be a mapping, got {type(data).__name__}")
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown settings: {sorted(unknown)}")
        return cls(**data)


def set_image_processing(**options) -> ImageProcessingSettings:
    """
    Build an ImageProcessingSettings descriptor

    Accepts the same keyword options as ImageProcessingSettings and fails
    with ConfigError on invalid types or ranges.
    """
    return ImageProcessingSettings(**options)


def save_settings(settings: ImageProcessingSettings, path: Union[str, Path]) -> Path:
    """Write settings to a YAML file"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.safe_dump(settings.to_dict(), f, sort_keys=False)
    return path


def load_settings(path: Union[str, Path]) -> ImageProcessingSettings:
    """Read settings from a YAML file written by save_settings"""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")

    with open(path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse settings file {path}: {e}") from e

    return ImageProcessingSettings.from_dict(data or {})
