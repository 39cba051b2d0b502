#!/usr/bin/env python3
"""
Setup script for PasPages Core.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_file.exists():
    requirements = [
        line.strip()
        for line in requirements_file.read_text().splitlines()
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="paspages",
    version="1.0.0",
    description="Modular content engine with validated plugins, themes and idempotent schema migrations",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="PasPages Contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={
        "paspages": [
            "admin/templates/*.html",
            "plugins/*/views/*.html",
            "themes/*/views/*.html",
        ],
    },
    python_requires=">=3.10",
    install_requires=requirements + [
        "uvicorn>=0.30.0",
        "python-dotenv>=1.0.0",
        "jinja2>=3.1.0",
        "markupsafe>=2.1.0",
        "cryptography>=41.0.0",
        "click>=8.1.0",
        "aiosqlite>=0.19.0",
        "pyyaml>=6.0",
        "httpx>=0.24.0",
        "aiofiles>=23.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "paspages=paspages.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: Dynamic Content :: Content Management System",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    ],
    keywords="cms asgi plugins themes migrations sqlite",
)
