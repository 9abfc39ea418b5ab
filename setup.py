#!/usr/bin/env python3
"""Setup script for the fusionukf package."""

import os

from setuptools import find_packages, setup


def _version():
    """Read ``__version__`` from fusionukf/version.py without importing it."""
    here = os.path.dirname(os.path.abspath(__file__))
    namespace = {}
    with open(os.path.join(here, "fusionukf", "version.py"), encoding="utf-8") as fh:
        exec(fh.read(), namespace)
    return namespace["__version__"]


setup(
    name="fusionukf",
    version=_version(),
    description=(
        "Unscented Kalman Filter fusing position and range/bearing "
        "measurements with a CTRV motion model"
    ),
    license="MIT",
    packages=find_packages(exclude=("tests", "examples")),
    python_requires=">=3.8",
    install_requires=["numpy>=1.20"],
    extras_require={"test": ["pytest>=7"]},
)
