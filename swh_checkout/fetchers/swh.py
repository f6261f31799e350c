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

import io
import json
import pathlib
import shutil
import tarfile
import tempfile
import time
from urllib import parse
from typing import (
    cast,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        Any,
        Mapping,
        Optional,
    )

    from typing_extensions import (
        Final,
    )

    from ..common import (
        PathLikePath,
        ProgsMapping,
        RawSwhid,
        RepoCommit,
        RepoURL,
        URIType,
    )

import dulwich.config
import dulwich.errors
import dulwich.repo

from . import (
    AbstractArchiveDownloader,
    ArchiveLayout,
    FetcherException,
    FetchFailureReason,
)

from .http import HTTPFetcher

from ..common import (
    SWH_ARCHIVE_API,
    ValidationError,
)

from ..identifiers import (
    parse_anchor,
    SwhidObjectType,
)

from ..utils.contents import (
    move_tree,
    remove_partial_tree,
)


class SoftwareHeritageFetcher(AbstractArchiveDownloader):
    SOFTWARE_HERITAGE_SCHEME: "Final[str]" = "swh"
    # The vault cookers, depending on the requested layout
    VAULT_COOKERS: "Final[Mapping[ArchiveLayout, str]]" = {
        ArchiveLayout.Flat: "flat",
        ArchiveLayout.Bare: "git-bare",
    }
    # Branch used when the bare repository HEAD does not point
    # to the requested revision
    CHECKOUT_BRANCH: "Final[bytes]" = b"refs/heads/swh-checkout"

    DIR_RETRIES: "Final[int]" = 60
    WAIT_SECS: "Final[int]" = 60

    def __init__(
        self,
        progs: "Optional[ProgsMapping]" = None,
        setup_block: "Optional[Mapping[str, Any]]" = None,
        http_fetcher: "Optional[HTTPFetcher]" = None,
    ):
        super().__init__(progs=progs, setup_block=setup_block)

        api_url = self.setup_block.get("apiURL", SWH_ARCHIVE_API)
        if not api_url.endswith("/"):
            api_url += "/"
        self.api_url: "str" = api_url
        self.vault_retries = int(self.setup_block.get("vaultRetries", self.DIR_RETRIES))
        self.wait_secs = float(self.setup_block.get("vaultWaitSeconds", self.WAIT_SECS))

        if http_fetcher is None:
            http_setup: "Mapping[str, Any]" = {}
            if "httpTimeout" in self.setup_block:
                http_setup = {"timeout": self.setup_block["httpTimeout"]}
            http_fetcher = HTTPFetcher(progs=progs, setup_block=http_setup)
        self.http_fetcher = http_fetcher

    @property
    def description(self) -> "str":
        return "Permanent copies of directories, revisions and snapshots archived at Software Heritage, obtained through its vault. SWHIDs follow what it is described at https://docs.softwareheritage.org/devel/swh-model/persistent-identifiers.html"

    def _api_uri(self, *path: "str") -> "URIType":
        # urljoin cannot be used due working with URIs
        return cast("URIType", self.api_url + "/".join(path) + "/")

    def _json_call(
        self,
        the_uri: "URIType",
        method: "Optional[str]" = None,
    ) -> "Any":
        resio = io.BytesIO()
        sec_context: "Mapping[str, Any]" = {
            "headers": {
                "Accept": "application/json",
            },
            "method": method,
        }
        try:
            self.http_fetcher.streamfetch(the_uri, resio, secContext=sec_context)
            res_doc = json.loads(resio.getvalue().decode("utf-8"))
        except FetcherException as fe:
            if fe.code == 404:
                raise FetcherException(
                    f"{the_uri} not found", code=404, reason=FetchFailureReason.NotArchived
                ) from fe
            raise
        except ValueError as ve:
            raise FetcherException(
                f"Ill-formed answer obtained from {the_uri}",
                reason=FetchFailureReason.Transport,
            ) from ve

        return res_doc

    def _cook(
        self,
        core_swhid: "RawSwhid",
        layout: "ArchiveLayout",
        dest_tarball: "PathLikePath",
    ) -> "None":
        """
        Asks the vault to cook the object, waiting until it is done,
        and then downloads the bundle
        """
        # ## See https://archive.softwareheritage.org/api/1/vault/flat/doc/
        # curl -H "Accept: application/json" -X POST https://archive.softwareheritage.org/api/1/vault/flat/swh:1:dir:193ea87c2bc5f08967c456056b9f5475a1b91481/
        cooker = self.VAULT_COOKERS[layout]
        vault_uri = self._api_uri("vault", cooker, core_swhid)

        http_method = "POST"
        status = None
        vault_doc: "Mapping[str, Any]" = {}
        for retry in range(self.vault_retries):
            if http_method == "GET":
                time.sleep(self.wait_secs)

            vault_doc = self._json_call(vault_uri, method=http_method)
            if not isinstance(vault_doc, dict):
                raise FetcherException(
                    f"Ill-formed answer obtained from {vault_uri}",
                    reason=FetchFailureReason.Transport,
                )

            status = vault_doc.get("status")
            self.logger.debug(f"Vault {cooker} cooking of {core_swhid}: {status}")
            if status in ("failed", "done"):
                break
            http_method = "GET"

        if status == "failed":
            raise FetcherException(
                f"Software Heritage vault was unable to cook {core_swhid} ({cooker}): {vault_doc.get('progress_message')}",
                reason=FetchFailureReason.CookingFailed,
            )

        if status != "done":
            raise FetcherException(
                f"For {core_swhid}, Software Heritage vault {vault_uri} is not ready after {self.vault_retries} tries, waiting {self.wait_secs} seconds on each",
                reason=FetchFailureReason.CookingTimeout,
            )

        # ## Get fetch_url property
        # ## See https://archive.softwareheritage.org/api/1/vault/flat/raw/doc/
        fetch_url = cast(
            "URIType",
            vault_doc.get("fetch_url", self._api_uri("vault", cooker, core_swhid, "raw")),
        )
        self.logger.info(f"Downloading {cooker} bundle of {core_swhid}")
        try:
            bundle_uri = self.http_fetcher.fetch(fetch_url, dest_tarball)
        except OSError as oe:
            raise FetcherException(
                f"Unable to store bundle from {fetch_url}: {oe}",
                reason=FetchFailureReason.Transport,
            ) from oe

        self.logger.debug(f"Bundle of {core_swhid} downloaded from {bundle_uri}")

    def _materialize(
        self,
        core_swhid: "RawSwhid",
        layout: "ArchiveLayout",
        directory: "PathLikePath",
        revision_hash: "Optional[str]" = None,
    ) -> "None":
        dest_path = pathlib.Path(directory).absolute()
        # The scratch area lives next to the destination,
        # so the final step is usually a rename
        if not dest_path.parent.is_dir():
            dest_path.parent.mkdir(parents=True)
        scratch_dir = pathlib.Path(
            tempfile.mkdtemp(prefix=".swh-checkout-", dir=dest_path.parent)
        )
        try:
            tarball_path = scratch_dir / "bundle.tar.gz"
            self._cook(core_swhid, layout, tarball_path)

            extract_dir = scratch_dir / "extracted"
            extract_dir.mkdir()
            try:
                with tarfile.open(
                    tarball_path, mode="r|*", bufsize=10 * 1024 * 1024
                ) as tF:
                    tF.extractall(path=extract_dir)
            except (tarfile.TarError, OSError) as te:
                raise FetcherException(
                    f"Unable to extract the bundle of {core_swhid}: {te}",
                    reason=FetchFailureReason.Extraction,
                ) from te

            if layout == ArchiveLayout.Flat:
                # The directory has as name the swhid
                extracted_path = extract_dir / core_swhid
                if not extracted_path.exists():
                    extracted_path = extract_dir
                move_tree(extracted_path, dest_path)
            else:
                # The bare repository has as name the swhid plus .git
                bare_path = extract_dir / (core_swhid + ".git")
                if not bare_path.exists():
                    bare_path = extract_dir
                self._checkout_bare(bare_path, dest_path, core_swhid, revision_hash)
        except FetcherException:
            remove_partial_tree(dest_path, logger=self.logger)
            raise
        except OSError as oe:
            remove_partial_tree(dest_path, logger=self.logger)
            raise FetcherException(
                f"Unable to materialize {core_swhid} at {dest_path}: {oe}",
                reason=FetchFailureReason.Extraction,
            ) from oe
        finally:
            shutil.rmtree(scratch_dir, ignore_errors=True)

    def _checkout_bare(
        self,
        bare_path: "pathlib.Path",
        dest_path: "pathlib.Path",
        core_swhid: "RawSwhid",
        revision_hash: "Optional[str]",
    ) -> "None":
        """
        Turns the bare repository into the .git directory of a
        working copy, and checks it out
        """
        dest_path.mkdir()
        git_dir = dest_path / ".git"
        move_tree(bare_path, git_dir)

        try:
            config = dulwich.config.ConfigFile.from_path(str(git_dir / "config"))
            config.set((b"core",), b"bare", False)
            config.write_to_path()

            with dulwich.repo.Repo(str(dest_path)) as repo:
                if revision_hash is not None:
                    commit_id = revision_hash.lower().encode("ascii")
                    if commit_id not in repo:
                        raise FetcherException(
                            f"Revision {revision_hash} is not in the bundle of {core_swhid}",
                            reason=FetchFailureReason.Extraction,
                        )
                    try:
                        head_id: "Optional[bytes]" = repo.head()
                    except KeyError:
                        head_id = None
                    if head_id != commit_id:
                        repo.refs[self.CHECKOUT_BRANCH] = commit_id
                        repo.refs.set_symbolic_ref(b"HEAD", self.CHECKOUT_BRANCH)

                repo.reset_index()
        except FetcherException:
            raise
        except (dulwich.errors.NotGitRepository, KeyError, OSError) as de:
            raise FetcherException(
                f"Unable to checkout the bare repository of {core_swhid}: {de}",
                reason=FetchFailureReason.Extraction,
            ) from de

    def download_from_origin(
        self,
        origin_url: "RepoURL",
        commit: "RepoCommit",
        directory: "PathLikePath",
    ) -> "None":
        # ## See https://archive.softwareheritage.org/api/1/origin/get/doc/
        # A revision can be archived through a different origin (i.e. a fork)
        try:
            # The origin is a path segment, so its query and fragment
            # separators must be escaped
            self._json_call(
                self._api_uri("origin", parse.quote(origin_url, safe=":/"), "get")
            )
        except FetcherException as fe:
            if fe.reason != FetchFailureReason.NotArchived:
                raise
            self.logger.warning(
                f"Origin {origin_url} is not archived at Software Heritage, looking for {commit} anyway"
            )

        # ## See https://archive.softwareheritage.org/api/1/revision/doc/
        # curl -H "Accept: application/json" https://archive.softwareheritage.org/api/1/revision/31348ed533961f84cf348bf1af660ad9de6f870c/
        rev_doc = self._json_call(self._api_uri("revision", commit.lower()))
        if not isinstance(rev_doc, dict) or "directory" not in rev_doc:
            raise FetcherException(
                f"Ill-formed revision description of {commit}",
                reason=FetchFailureReason.Transport,
            )

        # ## Prepare swh:1:dir identifier from the answer of the revision API call
        dir_swhid = cast(
            "RawSwhid", self.SOFTWARE_HERITAGE_SCHEME + ":1:dir:" + rev_doc["directory"]
        )
        self._materialize(dir_swhid, ArchiveLayout.Flat, directory)

    def download_swhid(
        self,
        swhid: "RawSwhid",
        directory: "PathLikePath",
        layout: "ArchiveLayout",
    ) -> "None":
        try:
            parsed = parse_anchor(swhid)
        except ValidationError as ve:
            raise FetcherException(
                f"{swhid} cannot be requested to the vault: {ve}",
                reason=FetchFailureReason.InvalidIdentifier,
            ) from ve

        # Only core SWHIDs are accepted by the vault
        core_swhid = parsed.core
        revision_hash: "Optional[str]" = None
        if parsed.object_type == SwhidObjectType.Revision:
            revision_hash = parsed.hash.lower()

        self._materialize(core_swhid, layout, directory, revision_hash=revision_hash)

    def download(
        self,
        origin_url: "RepoURL",
        commit: "RepoCommit",
        directory: "PathLikePath",
    ) -> "bool":
        try:
            self.download_from_origin(origin_url, commit, directory)
        except FetcherException as fe:
            self.logger.warning(
                f"Software Heritage retrieval of {commit} (origin {origin_url}) failed ({fe.reason.value if fe.reason is not None else 'unknown reason'}): {fe}"
            )
            return False

        self.logger.info(
            f"Commit {commit} from {origin_url} materialized at {directory} from Software Heritage"
        )
        return True

    def download_by_id(
        self,
        swhid: "RawSwhid",
        directory: "PathLikePath",
        layout: "ArchiveLayout",
    ) -> "bool":
        try:
            self.download_swhid(swhid, directory, layout)
        except FetcherException as fe:
            self.logger.warning(
                f"Software Heritage retrieval of {swhid} ({layout.value} layout) failed ({fe.reason.value if fe.reason is not None else 'unknown reason'}): {fe}"
            )
            return False

        self.logger.info(
            f"{swhid} materialized at {directory} from Software Heritage ({layout.value} layout)"
        )
        return True
