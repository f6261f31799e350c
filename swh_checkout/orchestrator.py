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
import inspect
import logging
import pathlib

from typing import (
    NamedTuple,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        Optional,
        Union,
    )

    from .common import (
        PathLikePath,
    )

    from .fetchers import (
        AbstractArchiveDownloader,
        AbstractGitFetcher,
    )

    from .identifiers import (
        Identifier,
    )

from .common import (
    ArchiveRetrievalError,
    DirectoryRequiredError,
    RetrievalExhaustedError,
    UsageError,
)

from .fetchers import (
    ArchiveLayout,
)

from .identifiers import (
    Swhid,
    SwhidObjectType,
    UrlCommit,
)

from .resolver import (
    derive_directory_name,
    MissingAttribute,
    Resolved,
    resolve_identifier,
    ResolvedTarget,
)

from .utils.contents import (
    remove_partial_tree,
)

from .validators import (
    SwhidPolicy,
    validate_commit,
    validate_directory,
    validate_swhid,
    validate_url,
)


class RetrievalStrategy(enum.Enum):
    # Live git remote first, archive as fallback
    GitWithArchiveFallback = "git+archive"
    # Archive only, by SWHID
    ArchiveDirect = "archive"


class RetrievalSource(enum.Enum):
    Git = "git"
    Archive = "archive"


class ArchiveTarget(NamedTuple):
    swhid: "Swhid"


class CheckoutRequest(NamedTuple):
    """
    The fully validated input of a retrieval
    """

    target: "Union[ResolvedTarget, ArchiveTarget]"
    directory: "pathlib.Path"

    @property
    def strategy(self) -> "RetrievalStrategy":
        if isinstance(self.target, ArchiveTarget):
            return RetrievalStrategy.ArchiveDirect
        return RetrievalStrategy.GitWithArchiveFallback


class CheckoutOutcome(NamedTuple):
    directory: "pathlib.Path"
    strategy: "RetrievalStrategy"
    source: "RetrievalSource"


class CheckoutOrchestrator:
    """
    It decides which retrieval strategy is used, and runs it.

    Strategies, in priority order:
    1. An URL and a commit: git, with archive fallback.
    2. A SWHID whose origin and commit can be derived: the same as 1.
    3. Any other SWHID: archive only, into an explicit directory.
    """

    def __init__(
        self,
        git_fetcher: "AbstractGitFetcher",
        archive_downloader: "AbstractArchiveDownloader",
        swhid_policy: "SwhidPolicy" = SwhidPolicy.Lenient,
    ):
        self.logger = logging.getLogger(
            dict(inspect.getmembers(self))["__module__"]
            + "::"
            + self.__class__.__name__
        )

        self.git_fetcher = git_fetcher
        self.archive_downloader = archive_downloader
        self.swhid_policy = swhid_policy

        self.logger.debug(
            f"Git fetcher: {git_fetcher.description}; archive downloader: {archive_downloader.description}"
        )

    def _select_identifier(
        self,
        url: "Optional[str]",
        commit: "Optional[str]",
        swhid: "Optional[str]",
    ) -> "Identifier":
        if swhid is not None:
            if url is not None or commit is not None:
                raise UsageError(
                    "A SWHID cannot be combined with an URL or a commit, use either --swhid or --url with --commit"
                )
            return validate_swhid(swhid, self.swhid_policy)

        if url is None and commit is None:
            raise UsageError("Either --swhid or --url with --commit must be provided")
        if url is None:
            raise UsageError(f"Commit {commit} was provided without an URL")
        if commit is None:
            raise UsageError(f"URL {url} was provided without a commit")

        return UrlCommit(origin_url=validate_url(url), commit=validate_commit(commit))

    def plan(
        self,
        url: "Optional[str]" = None,
        commit: "Optional[str]" = None,
        swhid: "Optional[str]" = None,
        directory: "Optional[PathLikePath]" = None,
    ) -> "CheckoutRequest":
        """
        Validates the inputs and decides what it is going to be
        retrieved and where. No network access happens here.
        """
        identifier = self._select_identifier(url, commit, swhid)

        resolution = resolve_identifier(identifier)
        target: "Union[ResolvedTarget, ArchiveTarget]"
        if isinstance(resolution, Resolved) and not resolution.target.is_empty():
            target = resolution.target
            assert target.origin_url is not None and target.commit is not None
            # Commits derived from anchors must also be full ones
            validate_commit(target.commit)
            if directory is None:
                directory = derive_directory_name(target.origin_url)
        else:
            assert isinstance(identifier, Swhid)
            if isinstance(resolution, MissingAttribute):
                self.logger.info(
                    f"{resolution.as_exception()}, so it is fetched directly from the archive"
                )
            else:
                self.logger.info(f"{resolution.reason}, so it is fetched directly from the archive")

            if directory is None:
                raise DirectoryRequiredError(
                    f"SWHID {identifier} cannot be located in a git repository, so a --directory must be provided"
                )
            target = ArchiveTarget(swhid=identifier)

        directory_path = pathlib.Path(directory)
        validate_directory(directory_path)

        return CheckoutRequest(target=target, directory=directory_path)

    def execute(self, request: "CheckoutRequest") -> "CheckoutOutcome":
        if isinstance(request.target, ArchiveTarget):
            return self._run_archive_direct(request.target.swhid, request.directory)

        return self._run_git_with_fallback(request.target, request.directory)

    def checkout(
        self,
        url: "Optional[str]" = None,
        commit: "Optional[str]" = None,
        swhid: "Optional[str]" = None,
        directory: "Optional[PathLikePath]" = None,
    ) -> "CheckoutOutcome":
        return self.execute(
            self.plan(url=url, commit=commit, swhid=swhid, directory=directory)
        )

    def _run_git_with_fallback(
        self,
        target: "ResolvedTarget",
        directory: "pathlib.Path",
    ) -> "CheckoutOutcome":
        origin_url = target.origin_url
        commit = target.commit
        assert origin_url is not None and commit is not None

        self.logger.info(f"Fetching commit {commit} from {origin_url} into {directory}")
        if self.git_fetcher.fetch(origin_url, commit, directory):
            return CheckoutOutcome(
                directory=directory,
                strategy=RetrievalStrategy.GitWithArchiveFallback,
                source=RetrievalSource.Git,
            )

        # The archive must start from a clean slate
        remove_partial_tree(directory, logger=self.logger)

        self.logger.warning(
            f"Unable to fetch commit {commit} from {origin_url}, trying the archive"
        )
        if self.archive_downloader.download(origin_url, commit, directory):
            return CheckoutOutcome(
                directory=directory,
                strategy=RetrievalStrategy.GitWithArchiveFallback,
                source=RetrievalSource.Archive,
            )

        raise RetrievalExhaustedError(
            f"Unable to retrieve commit {commit} from {origin_url}, neither from git nor from the archive"
        )

    def _run_archive_direct(
        self,
        swhid: "Swhid",
        directory: "pathlib.Path",
    ) -> "CheckoutOutcome":
        layout = (
            ArchiveLayout.Flat
            if swhid.object_type == SwhidObjectType.Directory
            else ArchiveLayout.Bare
        )

        self.logger.info(
            f"Fetching {swhid} from the archive into {directory} ({layout.value} layout: {layout.description})"
        )
        if not self.archive_downloader.download_by_id(swhid.raw, directory, layout):
            raise ArchiveRetrievalError(
                f"Unable to retrieve {swhid} from the archive"
            )

        return CheckoutOutcome(
            directory=directory,
            strategy=RetrievalStrategy.ArchiveDirect,
            source=RetrievalSource.Archive,
        )
