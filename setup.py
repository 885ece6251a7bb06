from __future__ import annotations

from pathlib import Path

from setuptools import find_packages, setup


ROOT = Path(__file__).resolve().parent


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


VERSION = read_text(ROOT / "VERSION").strip()
README = read_text(ROOT / "README.md")


setup(
    name="ironworker",
    version=VERSION,
    description="Command-line client for the IronWorker task-queue service.",
    long_description=README,
    long_description_content_type="text/markdown",
    author="IronWorker CLI Team",
    python_requires=">=3.8",
    packages=find_packages(include=["ironworker", "ironworker.*"]),
    include_package_data=True,
    install_requires=[
        "httpx>=0.24",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "iron-worker=ironworker.cli:main",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    keywords=["ironworker", "task queue", "worker", "client"],
)
