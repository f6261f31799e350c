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

from __future__ import absolute_import

import os
import re

from typing import (
    cast,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        Pattern,
    )

    from typing_extensions import (
        Final,
    )

    from .common import (
        PathLikePath,
        RepoCommit,
        RepoURL,
    )

from .common import (
    DirectoryExistsError,
    InvalidCommitError,
    InvalidURLError,
    MalformedSwhidError,
    StrDocEnum,
)

from .identifiers import (
    parse_swhid,
    Swhid,
    SwhidObjectType,
)

ACCEPTED_URL_PREFIXES: "Final[tuple[str, ...]]" = ("http://", "https://")

FULL_HASH_PATTERN: "Final[Pattern[str]]" = re.compile(r"^[0-9a-fA-F]{40}$")


class SwhidPolicy(StrDocEnum):
    Lenient = (
        "lenient",
        "Directory, revision and snapshot SWHIDs, with or without contextual attributes",
    )
    Contextual = (
        "contextual",
        "Only directory and revision SWHIDs carrying the contextual attributes (origin, and anchor for directories) needed to locate them in a git repository",
    )


def is_full_hash(value: "str") -> "bool":
    return FULL_HASH_PATTERN.match(value) is not None


def validate_url(url: "str") -> "RepoURL":
    if not url.startswith(ACCEPTED_URL_PREFIXES):
        raise InvalidURLError(
            f"URL {url} is not valid, it must start with {' or '.join(ACCEPTED_URL_PREFIXES)}"
        )

    return cast("RepoURL", url)


def validate_commit(commit: "str") -> "RepoCommit":
    if not is_full_hash(commit):
        raise InvalidCommitError(
            f"Commit {commit} is not a full commit hash (40 hexadecimal characters)"
        )

    return cast("RepoCommit", commit)


def validate_swhid(
    text: "str", policy: "SwhidPolicy" = SwhidPolicy.Lenient
) -> "Swhid":
    """
    It parses the SWHID, checking both the hash shape and
    the constraints from the policy
    """
    swhid = parse_swhid(text)

    if not is_full_hash(swhid.hash):
        raise MalformedSwhidError(
            f"SWHID {text} hash '{swhid.hash}' is not 40 hexadecimal characters"
        )

    if policy == SwhidPolicy.Contextual:
        if swhid.object_type == SwhidObjectType.Snapshot:
            raise MalformedSwhidError(
                f"SWHID {text} is a snapshot one, which cannot be located in a git repository"
            )
        if swhid.origin is None:
            raise MalformedSwhidError(f"SWHID {text} has no origin attribute")
        if swhid.object_type == SwhidObjectType.Directory and swhid.anchor is None:
            raise MalformedSwhidError(f"SWHID {text} has no anchor attribute")

    return swhid


def validate_directory(directory: "PathLikePath") -> "None":
    if os.path.lexists(directory):
        raise DirectoryExistsError(f"Directory {directory} already exists")
