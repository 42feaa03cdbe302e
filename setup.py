#!/usr/bin/env python

from setuptools import setup

setup(
    name="prefixfs",
    version="0.3.0",
    description="Folder view, read cache and cursor paging over a flat object store API",
    packages=["prefixfs", "prefixfs.api", "prefixfs.objectstore"],
    include_package_data=True,
    zip_safe=False,
    keywords=["API", "object storage", "S3"],
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Topic :: System :: Filesystems",
    ],
    python_requires=">=3.11",
    install_requires=[
        "fastapi[all]",
        "httpx",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings",
        "uvicorn",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-httpx",
            "anyio",
            "mypy",
            "flake8",
            "pre-commit",
        ]
    },
    entry_points={
        "console_scripts": [
            "prefixfs = prefixfs.__main__:main"
        ]
    },
)
