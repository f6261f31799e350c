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

__author__ = "INB team at Barcelona Supercomputing Center (BSC), ES"
__copyright__ = "© 2020-2025 Barcelona Supercomputing Center (BSC), ES"
__license__ = "Apache 2.0"

# https://www.python.org/dev/peps/pep-0396/
__version__ = "0.2.0"

from typing import (
    cast,
    MutableMapping,
    Optional,
    Sequence,
    Tuple,
)


def describeGitRepo(repo: str) -> Tuple[str, str]:
    """Describe the repository version.

    Args:
    repo: git repository root
    Returns: a string description of the current git revision,
    and the full commit id

    Examples: "gabcdefh", "v0.1" or "v0.1-5-gabcdefh".
    """
    import datetime
    import dulwich.objects
    import dulwich.porcelain
    import dulwich.repo
    import dulwich.walk
    import time

    r: dulwich.repo.Repo
    with dulwich.porcelain.open_repo_closing(repo) as r:  # type:ignore
        # Get a list of all tags
        refs = r.get_refs()
        tags: MutableMapping[str, Tuple[datetime.datetime, str]] = {}
        for keyb, value in refs.items():
            key = keyb.decode()
            if "tags" not in key:
                continue
            obj = r.get_object(value)

            _, tag = key.rsplit("/", 1)

            try:
                if isinstance(obj, dulwich.objects.Commit):
                    commit = obj
                elif isinstance(obj, dulwich.objects.Tag):
                    commit_o = obj.object
                    commit = cast(dulwich.objects.Commit, r.get_object(commit_o[1]))
                else:
                    continue
            except AttributeError:
                continue
            tags[tag] = (
                datetime.datetime(*time.gmtime(commit.commit_time)[:6]),
                commit.id.decode("ascii"),
            )

        sorted_tags: Sequence[Tuple[str, Tuple[datetime.datetime, str]]] = sorted(
            tags.items(), key=lambda tag: tag[1][0], reverse=True
        )

        latest_commit_id = r[r.head()].id.decode("ascii")

        if len(sorted_tags) == 0:
            return "g{}".format(latest_commit_id[:7]), latest_commit_id

        # We're now 0 commits from the top
        commit_count = 0

        walker: dulwich.walk.Walker
        walker = r.get_walker()
        for entry in walker:
            commit_id = entry.commit.id.decode("ascii")
            for tag_name, (_, tag_commit) in sorted_tags:
                if commit_id == tag_commit:
                    if commit_count == 0:
                        return tag_name, latest_commit_id
                    return (
                        "{}-{}-g{}".format(
                            tag_name,
                            commit_count,
                            latest_commit_id[:7],
                        ),
                        latest_commit_id,
                    )

            commit_count += 1

        # Return plain commit if no parent tag can be found
        return "g{}".format(latest_commit_id[:7]), latest_commit_id


# It returns something similar to 'git describe --tags'
def get_swh_checkout_version() -> Tuple[str, Optional[str]]:
    import os
    import dulwich.errors

    vertuple: Tuple[str, Optional[str]]
    vertuple = __version__, None
    checkout_dirname = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    if os.path.isdir(os.path.join(checkout_dirname, ".git")):
        try:
            vertuple = describeGitRepo(checkout_dirname)
        except dulwich.errors.NotGitRepository:
            # This can happen when swh-checkout is installed using pip
            pass

    return vertuple


def get_swh_checkout_version_str() -> str:
    described, commit = get_swh_checkout_version()
    if commit is None or described == __version__:
        return __version__

    return f"{__version__} ({described})"
