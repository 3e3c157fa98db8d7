"""
Errors raised by the preprocessing pipeline
"""


class ConfigError(ValueError):
    """Invalid or incomplete image processing settings"""


class ShapeMismatchError(ValueError):
    """Array rank or size does not match what the settings describe"""
