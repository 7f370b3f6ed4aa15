#!/usr/bin/env python

"""
Ref: https://github.com/argoai/argoverse-api/blob/master/setup.py
A setuptools based setup module.
See:
https://packaging.python.org/en/latest/distributing.html
https://github.com/pypa/sampleproject
"""

from pathlib import Path

# Always prefer setuptools over distutils
from setuptools import find_packages, setup

# Get the long description from the README file
long_description = (Path(__file__).parent / "README.md").read_text()

setup(
    name="gtfeat",
    version="0.1.0",
    description="Pluggable image describers (feature detection + description) for structure-from-motion",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="",
    author="",
    author_email="",
    license="BSD-3-Clause",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: POSIX",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Image Recognition",
    ],
    keywords="computer-vision",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"gtfeat.configs.describer": ["*.yaml"]},
    include_package_data=True,
    python_requires=">= 3.8",
    install_requires=[
        "numpy",
        "opencv-python>=4.4,<5",
        "dask[distributed]",
        "hydra-core>=1.2",
        "omegaconf",
        "simplejson",
        "Pillow",
    ],
    extras_require={"test": ["pytest"]},
)
