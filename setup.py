from setuptools import setup, find_packages

setup(
    name="strata",
    version="0.1.0",
    description="Strata - copy-on-write entity store with dataset content ingestion",
    packages=find_packages(include=["Strata", "Strata.*"]),
    python_requires=">=3.10",
    install_requires=[
        # Network
        "aiohttp>=3.8.0",

        # Configuration
        "python-dotenv>=0.19.0",

        # Testing
        "pytest>=7.0.0",
        "pytest-asyncio>=0.20.0",
    ],
    extras_require={
        "dev": [
            "black>=22.0.0",
            "flake8>=4.0.0",
            "mypy>=0.950",
        ],
    },
)
