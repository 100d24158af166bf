"""Setup configuration for secretary."""

import os
import sys

from setuptools import find_packages, setup

# Get version from package
here = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, here)
try:
    from secretary import __author__, __version__
except ImportError:
    __version__ = "0.1.0"
    __author__ = "secretary maintainers"

# Get the long description from the README file
with open(os.path.join(here, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="secretary",
    version=__version__,
    description="Inject secrets into a command as files and reload it when they rotate",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author=__author__,
    keywords="secrets rotation supervisor aws secretsmanager ssm cli",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click>=8.0.0",
        "pyyaml>=6.0",
        "jsonschema>=4.0.0",
        "boto3>=1.26.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.12.0",
            "mypy>=0.991",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "secretary=secretary.cli:cli",
        ],
    },
)
