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

import argparse
import enum
from typing import (
    cast,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    import os

    from typing import (
        Any,
        List,
        Mapping,
        MutableMapping,
        NewType,
        Optional,
        Union,
    )

    from typing_extensions import (
        Final,
        TypeAlias,
    )


# Patching default context in order to load CA certificates from certifi
import certifi
import ssl


def create_augmented_context(
    purpose: "ssl.Purpose" = ssl.Purpose.SERVER_AUTH,
    *,
    cafile: "Optional[str]" = None,
    capath: "Optional[str]" = None,
    cadata: "Optional[Union[str, bytes]]" = None,
) -> "ssl.SSLContext":
    context = ssl.create_default_context(
        purpose=purpose, cafile=cafile, capath=capath, cadata=cadata
    )

    context.load_verify_locations(cafile=certifi.where())

    return context


if ssl._create_default_https_context != create_augmented_context:
    ssl._create_default_https_context = create_augmented_context

if TYPE_CHECKING:
    # Abstraction of names
    SymbolicName = NewType("SymbolicName", str)
    # This is a relative path
    RelPath = NewType("RelPath", str)
    # This is an absolute path
    AbsPath = NewType("AbsPath", str)
    # This is either a relative or an absolute path
    AnyPath: TypeAlias = Union[RelPath, AbsPath]

    PathLikePath: TypeAlias = Union[str, os.PathLike[str]]

    URIType = NewType("URIType", str)
    # The URL of a git repository
    RepoURL = NewType("RepoURL", URIType)
    # A full, 40 hexadecimal characters, git commit hash
    RepoCommit = NewType("RepoCommit", str)
    # The raw text of a SWHID, with its contextual attributes
    RawSwhid = NewType("RawSwhid", str)

    SecurityContextConfig: TypeAlias = Mapping[str, Any]

    ProgsMapping: TypeAlias = MutableMapping[SymbolicName, AnyPath]

DEFAULT_GIT_CMD = cast("SymbolicName", "git")

DEFAULT_PROGS: "ProgsMapping" = {
    DEFAULT_GIT_CMD: cast("RelPath", DEFAULT_GIT_CMD),
}

SWH_ARCHIVE_API: "Final[str]" = "https://archive.softwareheritage.org/api/1/"


class AbstractSwhCheckoutException(Exception):
    pass


class UsageError(AbstractSwhCheckoutException):
    """
    Conflicting or missing selector arguments
    """

    pass


class ValidationError(AbstractSwhCheckoutException):
    """
    Malformed URL, commit or SWHID
    """

    pass


class InvalidURLError(ValidationError):
    pass


class InvalidCommitError(ValidationError):
    pass


class MalformedSwhidError(ValidationError):
    pass


class MissingAttributeError(AbstractSwhCheckoutException):
    """
    A SWHID lacks a contextual attribute needed to derive
    the git coordinates
    """

    attribute: "str"

    def __init__(self, msg: "str", attribute: "str"):
        super().__init__(msg)
        self.attribute = attribute


class MissingOriginAttributeError(MissingAttributeError):
    pass


class MissingAnchorAttributeError(MissingAttributeError):
    pass


class DirectoryRequiredError(AbstractSwhCheckoutException):
    pass


class DirectoryExistsError(AbstractSwhCheckoutException):
    pass


class UnnameableDirectoryError(AbstractSwhCheckoutException):
    pass


class RetrievalExhaustedError(AbstractSwhCheckoutException):
    pass


class ArchiveRetrievalError(AbstractSwhCheckoutException):
    pass


class ConfigValidationException(AbstractSwhCheckoutException):
    pass


class StrDocEnum(str, enum.Enum):
    # Learnt from https://docs.python.org/3.11/howto/enum.html#when-to-use-new-vs-init
    description: str

    def __new__(cls, value: "Any", description: "str" = "") -> "StrDocEnum":
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.description = description

        return obj

    def __str__(self) -> "str":
        return str(self.value)


class ArgsDefaultWithRawHelpFormatter(argparse.ArgumentDefaultsHelpFormatter):
    # Conditionally treat descriptions as raw
    def _split_lines(self, text: "str", width: "int") -> "List[str]":
        """
        Formats the given text by splitting the lines at '\n'.
        Overrides argparse.HelpFormatter._split_lines function.

        :param text: help text passed by ArgumentParser.HelpFormatter
        :param width: console width passed by argparse.HelpFormatter
        :return: argparse.HelpFormatter._split_lines function
        with new split text argument.
        """
        if text.startswith("raw|"):
            return text[4:].splitlines()
        return super()._split_lines(text, width)
