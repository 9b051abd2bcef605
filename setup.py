from setuptools import setup, find_packages

setup(
    name="blindpool",
    version="0.1.0",
    packages=find_packages(include=["blindpool", "blindpool.*"]),
    python_requires=">=3.11",
    install_requires=[
        "web3>=7.0.0",
        "eth-account>=0.13.0",
        "eth-abi>=5.0.0",
        "eth-utils>=4.0.0",
        "python-dotenv>=1.0.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "aiohttp>=3.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "blindpool-watch=blindpool.scripts.watch_auctions:run",
        ],
    },
)
