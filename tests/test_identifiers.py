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
    MalformedSwhidError,
    ValidationError,
)

from swh_checkout.identifiers import (
    parse_anchor,
    parse_swhid,
    SwhidObjectType,
)

logger = logging.getLogger(__name__)

DIR_HASH = "193ea87c2bc5f08967c456056b9f5475a1b91481"
REV_HASH = "31348ed533961f84cf348bf1af660ad9de6f870c"

PARSE_TESTBED = pytest.mark.parametrize(
    ["text", "object_type", "swhid_hash", "attributes"],
    [
        (
            f"swh:1:dir:{DIR_HASH}",
            SwhidObjectType.Directory,
            DIR_HASH,
            {},
        ),
        (
            f"swh:1:rev:{REV_HASH};origin=https://github.com/inab/swh-checkout",
            SwhidObjectType.Revision,
            REV_HASH,
            {"origin": "https://github.com/inab/swh-checkout"},
        ),
        (
            f"swh:1:dir:{DIR_HASH};origin=https://example.org/foo;visit=swh:1:snp:{DIR_HASH};anchor=swh:1:rev:{REV_HASH};path=/",
            SwhidObjectType.Directory,
            DIR_HASH,
            {
                "origin": "https://example.org/foo",
                "visit": f"swh:1:snp:{DIR_HASH}",
                "anchor": f"swh:1:rev:{REV_HASH}",
                "path": "/",
            },
        ),
        (
            # Values are split on the first equal sign
            f"swh:1:snp:{DIR_HASH};origin=https://example.org/foo?a=b;",
            SwhidObjectType.Snapshot,
            DIR_HASH,
            {"origin": "https://example.org/foo?a=b"},
        ),
        (
            # Hash shape is not checked while parsing
            "swh:1:rev:abc",
            SwhidObjectType.Revision,
            "abc",
            {},
        ),
    ],
)


@PARSE_TESTBED
def test_parse_swhid(
    text: "str", object_type: "SwhidObjectType", swhid_hash: "str", attributes: "dict"
) -> "None":
    swhid = parse_swhid(text)
    assert swhid.object_type == object_type
    assert swhid.hash == swhid_hash
    assert dict(swhid.attributes) == attributes
    assert swhid.version == "1"
    assert str(swhid) == text


def test_swhid_core() -> "None":
    swhid = parse_swhid(
        f"swh:1:dir:{DIR_HASH};origin=https://example.org/foo;anchor=swh:1:rev:{REV_HASH}"
    )
    assert swhid.core == f"swh:1:dir:{DIR_HASH}"
    assert swhid.origin == "https://example.org/foo"
    assert swhid.anchor == f"swh:1:rev:{REV_HASH}"


MALFORMED_TESTBED = pytest.mark.parametrize(
    ["text"],
    [
        ("",),
        (f"swh:2:dir:{DIR_HASH}",),
        (f"SWH:1:dir:{DIR_HASH}",),
        (f"swh:1:cnt:{DIR_HASH}",),
        (f"swh:1:rel:{DIR_HASH}",),
        (f"swh:1:foo:{DIR_HASH}",),
        (f"swh:1:dirx{DIR_HASH}",),
        ("swh:1:dir",),
        ("swh:1:dir:",),
        (f"swh:1:rev:{REV_HASH};origin",),
        (
            f"swh:1:rev:{REV_HASH};origin=https://example.org/a;origin=https://example.org/b",
        ),
    ],
)


@MALFORMED_TESTBED
def test_parse_malformed_swhid(text: "str") -> "None":
    with pytest.raises(MalformedSwhidError):
        parse_swhid(text)


def test_malformed_is_validation_error() -> "None":
    with pytest.raises(ValidationError):
        parse_swhid("https://example.org/foo")


def test_parse_anchor_accepts_any_type() -> "None":
    for object_type in SwhidObjectType:
        anchor = parse_anchor(f"swh:1:{object_type.value}:{REV_HASH}")
        assert anchor.object_type == object_type
        assert anchor.hash == REV_HASH


def test_swhid_core_is_lowercase() -> "None":
    swhid = parse_swhid(f"swh:1:rev:{REV_HASH.upper()};origin=https://example.org/foo")
    # The hash keeps its original spelling, but not the core form
    assert swhid.hash == REV_HASH.upper()
    assert swhid.core == f"swh:1:rev:{REV_HASH}"
