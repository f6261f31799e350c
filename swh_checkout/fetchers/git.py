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

import os
import subprocess
import tempfile
from typing import (
    cast,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        Any,
        IO,
        Mapping,
        Optional,
        Sequence,
    )

    from typing_extensions import (
        Final,
    )

    from ..common import (
        AnyPath,
        PathLikePath,
        ProgsMapping,
        RelPath,
        RepoCommit,
        RepoURL,
        SymbolicName,
    )

import dulwich.errors
import dulwich.porcelain

from . import (
    AbstractGitFetcher,
    FetcherException,
    FetchFailureReason,
)

from ..common import (
    DEFAULT_GIT_CMD,
)


class GitFetcher(AbstractGitFetcher):
    DEFAULT_GIT_CMD: "Final[SymbolicName]" = DEFAULT_GIT_CMD

    def __init__(
        self,
        progs: "Optional[ProgsMapping]" = None,
        setup_block: "Optional[Mapping[str, Any]]" = None,
    ):
        super().__init__(progs=progs, setup_block=setup_block)

        self.git_cmd: "AnyPath" = self.progs.get(
            self.DEFAULT_GIT_CMD, cast("RelPath", self.DEFAULT_GIT_CMD)
        )

    @property
    def description(self) -> "str":
        return "Commits from live git remotes, fetched by using git command line"

    def probe_remote(self, repoURL: "RepoURL") -> "None":
        """
        Raises an exception when the remote cannot be listed
        """
        try:
            # Dulwich works both with file, ssh, git and http(s) protocols
            dulwich.porcelain.ls_remote(repoURL)
        except (
            dulwich.errors.NotGitRepository,
            dulwich.errors.GitProtocolError,
        ) as ngr:
            raise FetcherException(
                f"{repoURL} is not a reachable git repository",
                reason=FetchFailureReason.Unreachable,
            ) from ngr
        except Exception as e:
            raise FetcherException(
                f"Unable to list remote references from {repoURL}: {e}",
                reason=FetchFailureReason.Unreachable,
            ) from e

    def _run_git(
        self,
        git_params: "Sequence[str]",
        git_stdout: "IO[bytes]",
        git_stderr: "IO[bytes]",
        cwd: "Optional[PathLikePath]" = None,
    ) -> "int":
        self.logger.debug(f'Running "{" ".join(git_params)}"')
        try:
            return subprocess.Popen(
                git_params,
                stdout=git_stdout,
                stderr=git_stderr,
                cwd=cwd,
            ).wait()
        except OSError as oe:
            raise FetcherException(
                f"Unable to run {self.git_cmd}: {oe}",
                reason=FetchFailureReason.CommandFailed,
            ) from oe

    def materialize_commit(
        self,
        repoURL: "RepoURL",
        repoCommit: "RepoCommit",
        repo_tag_destdir: "PathLikePath",
    ) -> "RepoCommit":
        """
        Materializes the worktree of the commit at the destination,
        which must not exist.

        :param repoURL: The URL to the repository.
        :param repoCommit: The full hash of the commit to checkout.
        :param repo_tag_destdir: Destination of the materialized repo.
        :return: The effective checkout
        """

        self.probe_remote(repoURL)

        destdir = os.fspath(repo_tag_destdir)
        self.logger.debug(f"Repo dir {destdir}")

        # Try cloning the repository without initial checkout
        gitclone_params = [
            self.git_cmd,
            "clone",
            "-n",
            "--recurse-submodules",
            repoURL,
            destdir,
        ]

        # Now, checkout the specific commit
        gitcheckout_params = [self.git_cmd, "checkout", "-q", repoCommit]

        # Commits not reachable from any advertised branch or tag
        # can still be fetched by hash from most forges
        gitfetch_params = [self.git_cmd, "fetch", "origin", repoCommit]

        # Last, submodule preparation
        gitsubmodule_params = [
            self.git_cmd,
            "submodule",
            "update",
            "--init",
            "--recursive",
        ]

        with tempfile.NamedTemporaryFile() as git_stdout, tempfile.NamedTemporaryFile() as git_stderr:
            failure_reason = FetchFailureReason.CommandFailed
            retval = self._run_git(gitclone_params, git_stdout, git_stderr)
            if retval == 0:
                retval = self._run_git(
                    gitcheckout_params, git_stdout, git_stderr, cwd=destdir
                )
                if retval != 0:
                    self.logger.debug(
                        f"Commit {repoCommit} not found in cloned refs from {repoURL}, fetching it explicitly"
                    )
                    retval = self._run_git(
                        gitfetch_params, git_stdout, git_stderr, cwd=destdir
                    )
                    if retval == 0:
                        retval = self._run_git(
                            gitcheckout_params, git_stdout, git_stderr, cwd=destdir
                        )
                    if retval != 0:
                        failure_reason = FetchFailureReason.UnknownCommit
            if retval == 0:
                retval = self._run_git(
                    gitsubmodule_params, git_stdout, git_stderr, cwd=destdir
                )

            # Proper error handling
            if retval != 0:
                # Reading the output and error for the report
                with open(git_stdout.name, "r") as c_stF:
                    git_stdout_v = c_stF.read()
                with open(git_stderr.name, "r") as c_stF:
                    git_stderr_v = c_stF.read()

                errstr = "ERROR: Unable to checkout '{}' (commit '{}'). Retval {}\n======\nSTDOUT\n======\n{}\n======\nSTDERR\n======\n{}".format(
                    repoURL, repoCommit, retval, git_stdout_v, git_stderr_v
                )
                raise FetcherException(errstr, code=retval, reason=failure_reason)

        # Last, we have to obtain the effective checkout
        gitrevparse_params = [self.git_cmd, "rev-parse", "--verify", "HEAD"]

        self.logger.debug(f'Running "{" ".join(gitrevparse_params)}"')
        with subprocess.Popen(
            gitrevparse_params,
            stdout=subprocess.PIPE,
            encoding="iso-8859-1",
            cwd=destdir,
        ) as revproc:
            repo_effective_checkout = ""
            if revproc.stdout is not None:
                repo_effective_checkout = revproc.stdout.read().rstrip()

        if repo_effective_checkout.lower() != repoCommit.lower():
            raise FetcherException(
                f"Checkout of {repoURL} is at '{repo_effective_checkout}' instead of {repoCommit}",
                reason=FetchFailureReason.UnknownCommit,
            )

        return cast("RepoCommit", repo_effective_checkout)

    def fetch(
        self,
        url: "RepoURL",
        commit: "RepoCommit",
        directory: "PathLikePath",
    ) -> "bool":
        try:
            self.materialize_commit(url, commit, directory)
        except FetcherException as fe:
            self.logger.warning(
                f"git fetch of {commit} from {url} failed ({fe.reason.value if fe.reason is not None else 'unknown reason'})"
            )
            self.logger.debug(str(fe))
            return False

        self.logger.info(f"Commit {commit} from {url} checked out at {directory}")
        return True
