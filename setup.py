"""Setup configuration for the Modbatch moderation bot."""

from setuptools import setup, find_packages

setup(
    name="modbatch",
    version="0.0.1",
    description="A chat moderation bot that batches messages for an AI judge",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.5",
        "openai>=1.30",
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
            "modbatch=modbatch.main:main",
        ],
    },
)
