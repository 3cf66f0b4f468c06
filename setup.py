"""
pricebadge - price labels for configurable compute nodes
Declarative, dependency-tracked, asynchronously evaluated price badges
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="pricebadge",
    version="1.0.0",
    description="Cached, dependency-tracked price badge labels for compute nodes",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["pricebadge", "pricebadge.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries",
    ],
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0.0",
        "rich>=13.0.0",
        "pydantic>=2.0.0",
        "jsonata-python>=0.5.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "pricebadge=pricebadge.cli:main",
        ],
    },
)
