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

"""
Parsing of the identifiers accepted by swh-checkout.

SWHIDs follow what it is described at
https://docs.softwareheritage.org/devel/swh-model/persistent-identifiers.html
"""

from __future__ import absolute_import

import enum

from typing import (
    cast,
    NamedTuple,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        Mapping,
        MutableMapping,
        Optional,
        Union,
    )

    from typing_extensions import (
        Final,
        TypeAlias,
    )

    from .common import (
        RawSwhid,
        RepoCommit,
        RepoURL,
    )

from .common import (
    MalformedSwhidError,
)

SWHID_PREFIX: "Final[str]" = "swh:1:"
SWHID_VERSION: "Final[str]" = "1"

ORIGIN_ATTRIBUTE: "Final[str]" = "origin"
ANCHOR_ATTRIBUTE: "Final[str]" = "anchor"


class SwhidObjectType(enum.Enum):
    Content = "cnt"
    Directory = "dir"
    Revision = "rev"
    Release = "rel"
    Snapshot = "snp"


# Only these ones can be used to select what it is going to be checked out
SELECTOR_OBJECT_TYPES: "Final[frozenset[SwhidObjectType]]" = frozenset(
    (
        SwhidObjectType.Directory,
        SwhidObjectType.Revision,
        SwhidObjectType.Snapshot,
    )
)


class UrlCommit(NamedTuple):
    origin_url: "RepoURL"
    commit: "RepoCommit"


class Swhid(NamedTuple):
    """
    A parsed SWHID.

    raw: The text it was parsed from, attributes included
    object_type: The SWHID object type
    hash: The object hash. Its shape is checked by the validators
    attributes: The contextual attributes, in the order they appeared
    version: The SWHID scheme version, always "1"
    """

    raw: "RawSwhid"
    object_type: "SwhidObjectType"
    hash: "str"
    attributes: "Mapping[str, str]"
    version: "str" = SWHID_VERSION

    @property
    def core(self) -> "RawSwhid":
        """
        The SWHID without its contextual attributes, which is what
        the archive API endpoints accept. Its hash is always lowercase
        """
        return cast(
            "RawSwhid",
            f"swh:{self.version}:{self.object_type.value}:{self.hash.lower()}",
        )

    @property
    def origin(self) -> "Optional[str]":
        return self.attributes.get(ORIGIN_ATTRIBUTE)

    @property
    def anchor(self) -> "Optional[str]":
        return self.attributes.get(ANCHOR_ATTRIBUTE)

    def __str__(self) -> "str":
        return self.raw


if TYPE_CHECKING:
    Identifier: TypeAlias = Union[UrlCommit, Swhid]


def _parse_swhid(
    text: "str",
    accepted_types: "frozenset[SwhidObjectType]",
) -> "Swhid":
    if not text.startswith(SWHID_PREFIX):
        raise MalformedSwhidError(
            f"SWHID {text} does not start with '{SWHID_PREFIX}'"
        )

    type_pos = len(SWHID_PREFIX)
    type_tag = text[type_pos : type_pos + 3]
    object_type: "Optional[SwhidObjectType]"
    try:
        object_type = SwhidObjectType(type_tag)
    except ValueError:
        object_type = None

    if (
        object_type not in accepted_types
        or text[type_pos + 3 : type_pos + 4] != ":"
    ):
        raise MalformedSwhidError(
            f"SWHID {text} has unsupported object type '{type_tag}' (accepted: {', '.join(sorted(t.value for t in accepted_types))})"
        )
    assert object_type is not None

    segments = text.split(";")
    core_fields = segments[0].split(":")
    if len(core_fields) < 4 or core_fields[3] == "":
        raise MalformedSwhidError(f"SWHID {text} has no hash")

    attributes: "MutableMapping[str, str]" = {}
    for segment in segments[1:]:
        # Trailing semicolons are tolerated
        if segment == "":
            continue
        if "=" not in segment:
            raise MalformedSwhidError(
                f"SWHID {text} has a malformed attribute '{segment}'"
            )
        key, value = segment.split("=", 1)
        if key in attributes:
            raise MalformedSwhidError(
                f"SWHID {text} has the attribute '{key}' more than once"
            )
        attributes[key] = value

    return Swhid(
        raw=cast("RawSwhid", text),
        object_type=object_type,
        hash=core_fields[3],
        attributes=attributes,
    )


def parse_swhid(text: "str") -> "Swhid":
    """
    Parses a SWHID which can be used as checkout selector
    (directory, revision or snapshot ones)
    """
    return _parse_swhid(text, SELECTOR_OBJECT_TYPES)


def parse_anchor(text: "str") -> "Swhid":
    """
    Anchors can point to any kind of SWH object
    """
    return _parse_swhid(text, frozenset(SwhidObjectType))
