#!/usr/bin/env python3
"""
setup script for lessonstream
"""

from setuptools import setup, find_namespace_packages

# read the readme file for the long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# read requirements from requirements.txt, skip comments and empty lines
with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

# configure the package setup
setup(
    name="lessonstream",
    version="1.0.0",
    author="lessonstream contributors",
    author_email="-",
    description="Incrementally parse streamed AI output into lessons, quizzes, summaries and slides",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="-",
    # src has no __init__.py, modules are imported as src.lessonstream.*
    packages=find_namespace_packages(include=["src.lessonstream", "src.lessonstream.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    # install all the dependencies from requirements.txt
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0", "httpx>=0.24"],
    },
    entry_points={
        "console_scripts": [
            "lessonstream=src.lessonstream.cli:app",
        ],
    },
)
