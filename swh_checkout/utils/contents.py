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

import errno
import logging
import os
import pathlib
import shutil

from typing import (
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        Optional,
    )

    from ..common import (
        PathLikePath,
    )


def _nearest_existing(path: "pathlib.Path") -> "pathlib.Path":
    while not path.exists():
        path = path.parent
    return path


def move_tree(src: "PathLikePath", dest: "PathLikePath") -> None:
    """
    Moves a freshly materialized tree to its final location, which
    must not exist. Renaming is used when both paths live in the
    same filesystem, and a copy preserving symlinks otherwise.
    """
    src_path = src if isinstance(src, pathlib.Path) else pathlib.Path(src)
    dest_path = dest if isinstance(dest, pathlib.Path) else pathlib.Path(dest)
    assert src_path.exists(), f"{src_path.as_posix()} must exist to be moved"

    dest_path = dest_path.absolute()
    dest_parent = dest_path.parent
    if not dest_parent.is_dir():
        dest_parent.mkdir(parents=True)

    # First, check whether both are in the same filesystem
    # as of https://unix.stackexchange.com/a/44250
    if src_path.lstat().st_dev == _nearest_existing(dest_parent).lstat().st_dev:
        try:
            os.rename(src_path, dest_path)
            return
        except OSError as ose:
            # Different bind mounts forbid renames
            if ose.errno != errno.EXDEV:
                raise

    if src_path.is_dir():
        shutil.copytree(src_path, dest_path, symlinks=True)
        shutil.rmtree(src_path, ignore_errors=True)
    else:
        shutil.copy2(src_path, dest_path)
        src_path.unlink()


def remove_partial_tree(
    path: "PathLikePath", logger: "Optional[logging.Logger]" = None
) -> "bool":
    """
    Removes what a failed retrieval could have left behind.
    It returns whether something was removed.
    """
    if not os.path.lexists(path):
        return False

    if logger is not None:
        logger.debug(f"Removing partially materialized {path}")

    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)

    return True
