"""
Setup script for tcswitch, the blinded tc/netem condition switcher.

This allows the package to be installed in development mode:
    pip install -e .

Or run directly:
    sudo python -m tcswitch --interface eth0
"""

from setuptools import setup, find_packages

setup(
    name="tcswitch",
    version="0.1.0",
    description="Blinded, randomized network condition switching with Linux tc/netem",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-mock",
            "black",
            "flake8",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "tcswitch=tcswitch.cli:main",
        ],
    },
)
