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

import abc
import enum
import logging

from typing import (
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        Any,
        IO,
        Mapping,
        Optional,
        Union,
    )

    from ..common import (
        PathLikePath,
        ProgsMapping,
        RawSwhid,
        RepoCommit,
        RepoURL,
        SecurityContextConfig,
        URIType,
    )

from ..common import (
    AbstractSwhCheckoutException,
    StrDocEnum,
)


class FetchFailureReason(enum.Enum):
    Unreachable = "unreachable"
    UnknownCommit = "unknown-commit"
    CommandFailed = "command-failed"
    NotArchived = "not-archived"
    CookingFailed = "cooking-failed"
    CookingTimeout = "cooking-timeout"
    Transport = "transport"
    Extraction = "extraction"
    InvalidIdentifier = "invalid-identifier"


class FetcherException(AbstractSwhCheckoutException):
    code: "Optional[Union[str, int]]"
    reason: "Optional[FetchFailureReason]"

    def __init__(
        self,
        msg: "str",
        code: "Optional[Union[str, int]]" = None,
        reason: "Optional[FetchFailureReason]" = None,
    ):
        super().__init__(msg)
        self.code = code
        self.reason = reason


class ArchiveLayout(StrDocEnum):
    Flat = ("flat", "Plain directory tree, without repository history")
    Bare = (
        "bare",
        "Full git object store, checked out like a cloned repository",
    )


class AbstractStatefulFetcher(abc.ABC):
    """
    Abstract class to model stateful fetchers
    """

    def __init__(
        self,
        progs: "Optional[ProgsMapping]" = None,
        setup_block: "Optional[Mapping[str, Any]]" = None,
    ):
        import inspect

        self.logger = logging.getLogger(
            dict(inspect.getmembers(self))["__module__"]
            + "::"
            + self.__class__.__name__
        )
        # This is used to resolve program names
        self.progs = progs if progs is not None else dict()
        self.setup_block = setup_block if isinstance(setup_block, dict) else dict()

    @property
    @abc.abstractmethod
    def description(self) -> "str":
        """
        Description of this fetcher
        """
        pass


class AbstractStatefulStreamingFetcher(AbstractStatefulFetcher):
    def fetch(
        self,
        remote_file: "URIType",
        cachedFilename: "PathLikePath",
        secContext: "Optional[SecurityContextConfig]" = None,
    ) -> "URIType":
        with open(cachedFilename, mode="wb") as dS:
            return self.streamfetch(remote_file, dS, secContext=secContext)

    @abc.abstractmethod
    def streamfetch(
        self,
        remote_file: "URIType",
        dest_stream: "IO[bytes]",
        secContext: "Optional[SecurityContextConfig]" = None,
    ) -> "URIType":
        """
        This is the method to be implemented by the stateful streaming fetcher
        which can receive as destination a byte stream.
        It returns the URI the contents were finally obtained from
        """
        pass


class AbstractGitFetcher(AbstractStatefulFetcher):
    """
    Capability which materializes the worktree of a commit
    from a live git remote
    """

    @abc.abstractmethod
    def fetch(
        self,
        url: "RepoURL",
        commit: "RepoCommit",
        directory: "PathLikePath",
    ) -> "bool":
        """
        It returns False (instead of raising an exception) on any
        retrieval failure
        """
        pass


class AbstractArchiveDownloader(AbstractStatefulFetcher):
    """
    Capability which materializes contents from a permanent archive
    """

    @abc.abstractmethod
    def download(
        self,
        origin_url: "RepoURL",
        commit: "RepoCommit",
        directory: "PathLikePath",
    ) -> "bool":
        """
        Materializes the tree of the commit, as archived from the origin.
        It returns False on any retrieval failure
        """
        pass

    @abc.abstractmethod
    def download_by_id(
        self,
        swhid: "RawSwhid",
        directory: "PathLikePath",
        layout: "ArchiveLayout",
    ) -> "bool":
        """
        Materializes the archived object, using the requested layout.
        It returns False on any retrieval failure
        """
        pass
