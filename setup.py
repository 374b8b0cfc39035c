from setuptools import setup, find_packages

setup(
    name="stake-ledger",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "PyYAML>=6.0.1",
        "loguru>=0.7.0",
        "pydantic>=2.0.0",
        "Click>=8.0",
        "requests>=2.31.0",
        "base58>=2.1.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "stake-ledger=stakeledger.main:cli",
        ],
    },
    python_requires=">=3.9",
    author="Stake Ledger Team",
    description="Lock-period token staking bookkeeping with linear rewards",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Office/Business :: Financial",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
    ],
)
