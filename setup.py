#!/usr/bin/python
# -*- encoding: utf-8 -*-
import ast
import re

from setuptools import find_packages
from setuptools import setup

## The version number is maintained in one place only, the package
## itself, and read from there.
_version_re = re.compile(r"__version__\s+=\s+(.*)")
with open("asyncdav/__init__.py", "rb") as f:
    version = str(
        ast.literal_eval(_version_re.search(f.read().decode("utf-8")).group(1))
    )

if __name__ == "__main__":
    test_packages = [
        "pytest",
        "pytest-asyncio",
        "pytest-coverage",
        "coverage",
        "pyyaml",
        "multidict",
    ]

    setup(
        name="asyncdav",
        version=version,
        description="Async WebDAV (RFC4918) client library with Basic and Digest authentication",
        classifiers=[
            "Development Status :: 4 - Beta",
            "Intended Audience :: Developers",
            "License :: OSI Approved :: Apache Software License",
            "Operating System :: OS Independent",
            "Programming Language :: Python",
            "Framework :: AsyncIO",
            "Topic :: Internet :: WWW/HTTP",
            "Topic :: Software Development :: Libraries " ":: Python Modules",
        ],
        keywords="webdav propfind digest",
        license="Apache",
        packages=find_packages(exclude=["tests", "tests.*"]),
        include_package_data=True,
        zip_safe=False,
        python_requires=">=3.10",
        install_requires=[
            "lxml",
            "aiohttp",
            "typing_extensions;python_version<'3.11'",
        ],
        extras_require={
            "test": test_packages,
            "yaml": ["pyyaml"],
        },
    )
