"""
VideoSummaryBot — setuptools build script.

Usage:
    # Development install:
    pip install -e .

    # Run the bot:
    summarybot            (or: python3 main.py)

    # Tests:
    python3 -m unittest discover -s tests
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "VideoSummaryBot"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Telegram bot that summarizes YouTube videos from their subtitles",
    packages=find_namespace_packages(include=["summarybot", "summarybot.*"]),
    py_modules=["main"],
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "summarybot = main:main",
        ],
    },
)
