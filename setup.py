from setuptools import setup, find_packages

setup(
    name="chronicle",
    version="1.0.0",
    description="Cross-source near-duplicate detection and clustering for news feeds",
    author="HK Daily Chronicle",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"chronicle": ["source_priority.yaml"]},
    install_requires=[
        "beautifulsoup4>=4.12.0",
        "python-dateutil>=2.8.0",
        "rich>=13.0.0",
        "pyyaml>=6.0.0",
        "SQLAlchemy>=2.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": [
            "chronicle=chronicle.cli:main",
        ],
    },
    python_requires=">=3.9",
)
