"""
Setup script for koda-practice.

Koda Practice is the skill-practice engine of the Koda learning platform.
It drives a single practice loop for a student:

1. Question selection - fixed question bank or AI generation
2. Scoring - base points, difficulty multiplier, streak and speed bonuses
3. Rewards - configurable reward/penalty rules
4. Progression - mastery detection and auto-advance timing

The 'koda' command is a terminal driver for the practice loop.
"""

from setuptools import find_packages, setup

setup(
    name="koda-practice",
    version="1.0.0",
    description="Skill practice scoring and progression engine for the Koda learning platform",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Koda",
    packages=find_packages(include=["src", "src.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "koda=src.cli.practice_cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning gamification practice mastery education",
)
