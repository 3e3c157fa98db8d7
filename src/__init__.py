"""
Radiology feature extraction

Preprocessing of 2D radiology images into fixed-shape tensors and
autoencoder training on the result.
"""

__version__ = '1.0.0'
