#!/usr/bin/env python3
"""
sqlhandle -- database handles with pluggable error classification
"""

# Copyright (C) 2026 The Psycopg Team


import re
import os
from setuptools import setup, find_packages

# Grab the version without importing the module
# or we will get import errors on install if prerequisites are still missing
fn = os.path.join(os.path.dirname(__file__), "sqlhandle/version.py")
with open(fn) as f:
    m = re.search(r"""(?mi)^__version__\s*=\s*["']+([^'"]+)["']+""", f.read())
if m:
    version = m.group(1)
else:
    raise ValueError("cannot find __version__ in the version module")

# Read the description from the README
with open(os.path.join(os.path.dirname(__file__), "README.rst")) as f:
    readme = f.read()

classifiers = """
Intended Audience :: Developers
Programming Language :: Python :: 3
License :: OSI Approved :: GNU Lesser General Public License v3 (LGPLv3)
Topic :: Database
Topic :: Database :: Front-Ends
Topic :: Software Development
Topic :: Software Development :: Libraries :: Python Modules
"""

extras_require = {
    # Requirements to run the test suite
    "test": [
        "mypy >= 0.990",
        "pytest >= 6.2.5",
        "pytest-cov >= 3.0",
        "pytest-randomly >= 3.10",
    ],
    # Requirements needed for development
    "dev": [
        "black >= 22.3.0",
        "flake8 >= 4.0",
        "mypy >= 0.990",
        "types-setuptools >= 57.4",
        "wheel >= 0.37",
    ],
}

setup(
    name="sqlhandle",
    description=readme.splitlines()[0],
    long_description="\n".join(readme.splitlines()[2:]).lstrip(),
    author="The Psycopg Team",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"sqlhandle": ["py.typed"]},
    classifiers=[x for x in classifiers.split("\n") if x],
    install_requires=["typing_extensions >= 4.1"],
    extras_require=extras_require,
    zip_safe=False,
    version=version,
)
