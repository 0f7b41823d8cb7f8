"""Setup configuration for ModSentry Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="modsentry",
    version="0.0.1",
    description="A Discord bot for word-filter moderation with audit logging",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "PyYAML>=6.0",
        "jsonschema>=4.0",
        "python-dotenv>=1.0",
        "prompt_toolkit>=3.0",
        "tenacity>=8.2",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "modsentry=modsentry.main:main",
        ],
    },
)
