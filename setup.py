"""Setup script for radiology feature extraction package"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / 'README.md'
long_description = readme_file.read_text() if readme_file.exists() else ''

setup(
    name='radiology-feature-extraction',
    version='1.0.0',
    description='Radiology image preprocessing and autoencoder feature extraction',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    install_requires=[
        'torch>=2.0.0',
        'numpy>=1.24.0',
        'pandas>=2.0.0',
        'opencv-python>=4.8.0',
        'tqdm>=4.66.0',
        'pyyaml>=6.0',
        'joblib>=1.3.0',
    ],
    extras_require={
        'dev': [
            'pytest>=7.4.0',
        ]
    },
    entry_points={
        'console_scripts': [
            'radiology-train-autoencoder=scripts.train_autoencoder:main',
            'radiology-extract-features=scripts.extract_features:main',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Medical Science Apps.',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
    ],
)
