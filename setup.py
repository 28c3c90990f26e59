"""
Setup script for ballspec.
"""

import setuptools
from setuptools import setup
import os
import codecs


# Helper functions
def get_version(rel_path):
    """Read version from a file via text parsing, following PyPA guide."""
    def read(rel_path):
        here = os.path.abspath(os.path.dirname(__file__))
        with codecs.open(os.path.join(here, rel_path), "r") as fp:
            return fp.read()
    for line in read(rel_path).splitlines():
        if line.startswith("__version__"):
            delim = '"' if '"' in line else "'"
            return line.split(delim)[1]
    else:
        raise RuntimeError("Unable to find version string.")

# Runtime requirements
install_requires = [
    "docopt",
    "h5py >= 3.0.0",
    "numexpr",
    "numpy >= 1.20.0",
    "pytest",
    "pytest-benchmark",
    "pytest-cov",
    "pytest-xdist",
    "scipy >= 1.4.0"]

# Grab long_description from README
with open("README.md") as f:
    long_description = f.read()

# Setup
setup(
    name="ballspec",
    version=get_version("ballspec/__init__.py"),
    author="The ballspec developers",
    description="Spectral fields, operators, and Helmholtz solves on the unit ball.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=["Programming Language :: Python :: 3"],
    python_requires=">=3.9",
    install_requires=install_requires,
    license="GPL3",
    packages=setuptools.find_namespace_packages(include=["ballspec*"]),
    package_data={"ballspec": ["ballspec.cfg"]})
