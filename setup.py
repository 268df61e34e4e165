#!/usr/bin/env python3
"""nuxfly - Setup"""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="nuxfly",
    version="0.1.0",
    description="Deploy Nuxt applications to Fly.io with SQLite, Litestream and Tigris storage",
    author="nuxfly contributors",
    packages=find_packages(include=["nuxfly", "nuxfly.*"]),
    package_data={"nuxfly": ["stubs/*.j2"]},
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "nuxfly=nuxfly.main:main",
        ],
    },
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
