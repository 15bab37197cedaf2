# -*- coding: utf-8 -*-
from pathlib import Path
import re

from setuptools import setup


def get_install_requires() -> list:
    return [
        "setuptools",
        "alive-progress",
        "boto3"
    ]


def get_extras_require() -> dict:
    return {
        "dev": [
            "flake8",
            "flake8-bugbear",
            "flake8-builtins",
            "flake8-fixme",
            "flake8-walrus",
            "flake8-return",
            "flake8-printf-formatting",
            "flake8-broken-line",
            "flake8-comprehensions",
            "flake8-eradicate",
            "flake8-executable",
            "flake8-bandit",
            "flake8-annotations",
            "setuptools",
            "pytest",
            "mypy",
            "coverage"
        ]
    }


def get_version(package: str) -> str:
    """
    Return package version as listed in `__version__` in `dirzipper/version.py`.
    """
    version = Path(package, "version.py").read_text()
    return re.search("__version__ = ['\"]([^'\"]+)['\"]", version).group(1)


setup(
    name="dirzipper",
    version=get_version("dirzipper"),
    author="Bioxydyn Limited",
    author_email="matthew.heaton@bioxydyn.com",
    description="Zip a directory, filtering files by include and exclude patterns",
    long_description="",
    include_package_data=True,
    packages=["dirzipper", "dirzipper.cli"],
    zip_safe=False,
    install_requires=get_install_requires(),
    extras_require=get_extras_require(),
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "zipp = dirzipper.cli:cli",
        ]
    }
)
