#! /usr/bin/env python
'''
sgnsim setup script
'''

# isort:skip_file

import os
import re
from setuptools import setup, find_packages


def read_version():
    """
    Read the version number from the package without importing it (importing
    needs the dependencies to be installed already).
    """
    init_file = os.path.join(os.path.dirname(__file__), "sgnsim", "__init__.py")
    with open(init_file, encoding="utf-8") as f:
        match = re.search(r'^__version__ = "([^"]+)"', f.read(), re.MULTILINE)
    return match.group(1)


setup(
    name="sgnsim",
    version=read_version(),
    description=(
        "Double cable model of a cochlear spiral ganglion neuron stimulated "
        "by an extracellular point electrode"
    ),
    packages=find_packages(),
    package_data={"sgnsim": ["default_preferences"]},
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.6",
        "sympy>=1.6",
        "packaging",
    ],
    extras_require={
        "test": ["pytest"],
        "plot": ["matplotlib"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
    ],
)
