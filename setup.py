from setuptools import setup, find_packages

setup(
    name="chatpatch",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests",
        "pyyaml",
        "textual",
        "pydantic>=2.0",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "chatpatch=chatpatch.cli:main",
        ],
    },
    author="Uday Kanth",
    description="Patch review engine and context selection for an editor chat panel.",
)
