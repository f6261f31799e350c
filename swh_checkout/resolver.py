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

import enum

from typing import (
    cast,
    NamedTuple,
    TYPE_CHECKING,
)
from urllib import parse

if TYPE_CHECKING:
    from typing import (
        Optional,
        Union,
    )

    from typing_extensions import (
        TypeAlias,
    )

    from .common import (
        RepoCommit,
        RepoURL,
    )

    from .identifiers import (
        Identifier,
    )

from .common import (
    MissingAnchorAttributeError,
    MissingAttributeError,
    MissingOriginAttributeError,
    UnnameableDirectoryError,
)

from .identifiers import (
    ANCHOR_ATTRIBUTE,
    ORIGIN_ATTRIBUTE,
    parse_anchor,
    Swhid,
    SwhidObjectType,
    UrlCommit,
)


class ResolvedTarget(NamedTuple):
    """
    Git-fetchable coordinates. Both are None when the identifier
    cannot carry an origin
    """

    origin_url: "Optional[RepoURL]" = None
    commit: "Optional[RepoCommit]" = None

    def is_empty(self) -> "bool":
        return self.origin_url is None or self.commit is None


class MissingAttributeKind(enum.Enum):
    Origin = ORIGIN_ATTRIBUTE
    Anchor = ANCHOR_ATTRIBUTE


class Resolved(NamedTuple):
    target: "ResolvedTarget"


class Unresolvable(NamedTuple):
    reason: "str"


class MissingAttribute(NamedTuple):
    kind: "MissingAttributeKind"
    swhid: "Swhid"

    def as_exception(self) -> "MissingAttributeError":
        msg = f"SWHID {self.swhid} has no {self.kind.value} attribute"
        if self.kind == MissingAttributeKind.Anchor:
            return MissingAnchorAttributeError(msg, attribute=self.kind.value)
        return MissingOriginAttributeError(msg, attribute=self.kind.value)


if TYPE_CHECKING:
    Resolution: TypeAlias = Union[Resolved, Unresolvable, MissingAttribute]


def _resolve_revision(swhid: "Swhid", revision_hash: "str") -> "Resolution":
    origin = swhid.origin
    if origin is None:
        return MissingAttribute(kind=MissingAttributeKind.Origin, swhid=swhid)

    return Resolved(
        ResolvedTarget(
            origin_url=cast("RepoURL", origin),
            commit=cast("RepoCommit", revision_hash),
        )
    )


def resolve_identifier(identifier: "Identifier") -> "Resolution":
    """
    Derives the origin URL and commit hash needed to fetch the identifier
    from a git repository.

    A malformed anchor raises MalformedSwhidError, as it is a validation
    problem instead of a resolution one.
    """
    if isinstance(identifier, UrlCommit):
        return Resolved(
            ResolvedTarget(origin_url=identifier.origin_url, commit=identifier.commit)
        )

    if identifier.object_type == SwhidObjectType.Revision:
        return _resolve_revision(identifier, identifier.hash)

    if identifier.object_type == SwhidObjectType.Directory:
        anchor = identifier.anchor
        if anchor is None:
            return MissingAttribute(kind=MissingAttributeKind.Anchor, swhid=identifier)

        anchor_swhid = parse_anchor(anchor)
        if anchor_swhid.object_type != SwhidObjectType.Revision:
            return Unresolvable(
                f"SWHID {identifier} is anchored to a {anchor_swhid.object_type.name.lower()}, not to a revision"
            )

        # The origin is carried by the directory SWHID itself
        return _resolve_revision(identifier, anchor_swhid.hash)

    return Unresolvable(
        f"SWHID {identifier} is a {identifier.object_type.name.lower()}, which has no single commit"
    )


def resolve(identifier: "Identifier") -> "ResolvedTarget":
    """
    Returns an empty target for identifiers which cannot be located
    in a git repository, and raises MissingAttributeError when some
    needed contextual attribute is absent
    """
    resolution = resolve_identifier(identifier)
    if isinstance(resolution, Resolved):
        return resolution.target
    if isinstance(resolution, MissingAttribute):
        raise resolution.as_exception()

    return ResolvedTarget()


def derive_directory_name(url: "str") -> "str":
    """
    The last non-empty segment of the URL path, percent-decoded
    """
    parsed_url = parse.urlparse(url)
    segments = [
        segment for segment in parse.unquote(parsed_url.path).split("/") if segment
    ]
    if len(segments) == 0:
        raise UnnameableDirectoryError(
            f"Unable to derive a directory name from {url}, please provide one"
        )

    return segments[-1]
