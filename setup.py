"""Setup configuration for the Anchor backend pipeline."""

from setuptools import setup, find_packages

setup(
    name="anchor",
    version="0.0.1",
    description="Moderation, notification and daily devotional pipeline for the Anchor support app",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "openai>=1.40",
        "aiosqlite>=0.20",
        "aiohttp>=3.9",
        "jsonschema>=4.0",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "anchor=anchor.main:main",
        ],
    },
)
