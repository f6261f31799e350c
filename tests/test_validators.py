#!/usr/bin/env python
# -*- coding: utf-8 -*-

# SPDX-License-Identifier: Apache-2.0
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

import pytest
import logging

from swh_checkout.common import (
    DirectoryExistsError,
    InvalidCommitError,
    InvalidURLError,
    MalformedSwhidError,
)

from swh_checkout.identifiers import (
    SwhidObjectType,
)

from swh_checkout.validators import (
    SwhidPolicy,
    validate_commit,
    validate_directory,
    validate_swhid,
    validate_url,
)

from typing import (
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    import pathlib

logger = logging.getLogger(__name__)

HASH_A = "31348ed533961f84cf348bf1af660ad9de6f870c"
HASH_B = "193EA87C2BC5F08967C456056B9F5475A1B91481"


@pytest.mark.parametrize(
    ["url"],
    [
        ("https://github.com/inab/swh-checkout.git",),
        ("http://example.org/foo",),
    ],
)
def test_validate_url(url: "str") -> "None":
    assert validate_url(url) == url


@pytest.mark.parametrize(
    ["url"],
    [
        ("",),
        ("ftp://example.org/foo",),
        ("git@github.com:inab/swh-checkout.git",),
        ("ssh://git@github.com/inab/swh-checkout.git",),
        ("HTTPS://example.org/foo",),
        ("example.org/foo",),
    ],
)
def test_validate_url_rejects(url: "str") -> "None":
    with pytest.raises(InvalidURLError):
        validate_url(url)


@pytest.mark.parametrize(
    ["commit"],
    [
        (HASH_A,),
        (HASH_B,),
    ],
)
def test_validate_commit(commit: "str") -> "None":
    assert validate_commit(commit) == commit


@pytest.mark.parametrize(
    ["commit"],
    [
        ("",),
        ("main",),
        (HASH_A[:7],),
        (HASH_A + "0",),
        (HASH_A[:-1] + "g",),
        (" " + HASH_A[1:],),
    ],
)
def test_validate_commit_rejects(commit: "str") -> "None":
    with pytest.raises(InvalidCommitError):
        validate_commit(commit)


LENIENT_TESTBED = pytest.mark.parametrize(
    ["text", "object_type"],
    [
        (f"swh:1:dir:{HASH_A}", SwhidObjectType.Directory),
        (f"swh:1:rev:{HASH_B}", SwhidObjectType.Revision),
        (f"swh:1:snp:{HASH_A}", SwhidObjectType.Snapshot),
    ],
)


@LENIENT_TESTBED
def test_validate_swhid_lenient(text: "str", object_type: "SwhidObjectType") -> "None":
    assert validate_swhid(text).object_type == object_type
    assert validate_swhid(text, SwhidPolicy.Lenient).object_type == object_type


@pytest.mark.parametrize(
    ["text"],
    [
        ("swh:1:dir:abc",),
        (f"swh:1:rev:{HASH_A}0",),
        (f"swh:1:rev:{HASH_A[:-1]}z;origin=https://example.org/foo",),
        (f"swh:1:cnt:{HASH_A}",),
    ],
)
def test_validate_swhid_rejects(text: "str") -> "None":
    with pytest.raises(MalformedSwhidError):
        validate_swhid(text)


CONTEXTUAL_TESTBED = pytest.mark.parametrize(
    ["text", "valid"],
    [
        (f"swh:1:rev:{HASH_A};origin=https://example.org/foo", True),
        (
            f"swh:1:dir:{HASH_B};origin=https://example.org/foo;anchor=swh:1:rev:{HASH_A}",
            True,
        ),
        (f"swh:1:rev:{HASH_A}", False),
        (f"swh:1:dir:{HASH_B};origin=https://example.org/foo", False),
        (f"swh:1:dir:{HASH_B};anchor=swh:1:rev:{HASH_A}", False),
        (f"swh:1:snp:{HASH_A};origin=https://example.org/foo", False),
    ],
)


@CONTEXTUAL_TESTBED
def test_validate_swhid_contextual(text: "str", valid: "bool") -> "None":
    if valid:
        validate_swhid(text, SwhidPolicy.Contextual)
    else:
        with pytest.raises(MalformedSwhidError):
            validate_swhid(text, SwhidPolicy.Contextual)


def test_swhid_policy_from_value() -> "None":
    assert SwhidPolicy("contextual") == SwhidPolicy.Contextual
    assert str(SwhidPolicy.Lenient) == "lenient"
    assert "git repository" in SwhidPolicy.Contextual.description


def test_validate_directory(tmppath: "pathlib.Path") -> "None":
    validate_directory(tmppath / "not-there")

    with pytest.raises(DirectoryExistsError):
        validate_directory(tmppath)

    existing_file = tmppath / "file.txt"
    existing_file.write_text("hello")
    with pytest.raises(DirectoryExistsError):
        validate_directory(existing_file)

    # Dangling symlinks also count as existing
    dangling = tmppath / "dangling"
    dangling.symlink_to(tmppath / "nowhere")
    with pytest.raises(DirectoryExistsError):
        validate_directory(dangling)
