#!/usr/bin/env python
# -*- coding: utf-8 -*-

# Copyright 2020-2025 Barcelona Supercomputing Center (BSC), Spain
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import re
import os
import sys
import setuptools

# In this way, we are sure we are getting
# the installer's version of the library
# not the system's one
setupDir = os.path.dirname(__file__)
sys.path.insert(0, setupDir)

from swh_checkout import __version__ as swh_checkout_version
from swh_checkout import __author__ as swh_checkout_author
from swh_checkout import __license__ as swh_checkout_license

# Populating the long description
with open("README.md", "r") as fh:
    long_description = fh.read()

# Populating the install requirements
with open("requirements.txt") as f:
    requirements = []
    egg = re.compile(r"#[^#]*egg=([^=&]+)")
    for line in f.read().splitlines():
        m = egg.search(line)
        requirements.append(line if m is None else m.group(1))

package_data = {
    "swh_checkout": [
        "schemas/*.json",
    ],
}

setuptools.setup(
    name="swh_checkout",
    version=swh_checkout_version,
    scripts=["swh-checkout.py"],
    package_data=package_data,
    author=swh_checkout_author,
    author_email="jose.m.fernandez@bsc.es",
    license=swh_checkout_license,
    description="Checkout of git commits from their repositories or from the Software Heritage archive",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/inab/swh-checkout",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
)
