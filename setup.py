#!/usr/bin/env python3
"""
PhageCompare - Phage genome comparison and horizontal gene transfer provenance
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="phagecompare",
    version="1.0.0",
    description="Phage genome comparison, MinHash sketching, HGT island provenance and synteny alignment",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
    ],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.22.0",
        "scipy>=1.8.0",
        "biopython>=1.80",
        "tqdm>=4.60.0",
        "numba",
    ],
    extras_require={
        "accel": ["numba>=0.56.0"],
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "phagecompare=phagecompare.__main__:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
