"""
Setup configuration for creatorscook package.
"""

from setuptools import setup, find_packages

setup(
    name="creatorscook",
    version="0.1.0",
    description="Review insight, virality angle and script compliance engine for short-form video creators",
    packages=find_packages(include=["creatorscook", "creatorscook.*"]),
    python_requires=">=3.10",
    install_requires=[
        "supabase>=2.10.0",
        "pydantic>=2.5.0",
        "pydantic-ai>=1.0.0,<2",
        "pydantic-graph>=1.0.0,<2",
        "apify-client>=1.6.0",
        "firecrawl-py>=4.0.0",
        "click>=8.1.0",
        "python-dotenv>=1.0.0",
        "logfire>=3.0.0",
        "anthropic>=0.40.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "creatorscook=creatorscook.cli.main:cli",
        ],
    },
)
