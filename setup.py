"""Setup script for the weatherstation package."""

from setuptools import find_packages, setup

setup(
    name="weatherstation",
    version="0.1.0",
    description="Weather station temperature and humidity dashboard",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pyyaml",
        "python-dotenv",
        "aiohttp",
        "rich",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "black",
            "isort",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "weatherstation-dashboard=weatherstation.display:main",
        ],
    },
)
