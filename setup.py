#!/usr/bin/env python

from setuptools import setup

setup(
    name="xcscaffold",
    version="0.1.0",
    packages=[
        "xcscaffold",
        "xcscaffold.details",
        "xcscaffold.details.tools",
        "xcscaffold.generators",
        "xcscaffold.generators.xcode",
    ],
    python_requires=">=3.9",
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["xcscaffold = xcscaffold.__main__:main"]},
)
