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

import pytest
import logging
import pathlib

from swh_checkout.common import (
    ConfigValidationException,
    DEFAULT_GIT_CMD,
)

from swh_checkout.config import (
    default_config_filename,
    DEFAULT_LOCAL_CONFIG_RELNAME,
    LOCAL_CONFIG_ENV_VAR,
    load_local_config,
    progs_from_config,
    swh_setup_block,
    swhid_policy_from_config,
)

from swh_checkout.validators import (
    SwhidPolicy,
)

logger = logging.getLogger(__name__)


def test_default_config_filename(
    tmppath: "pathlib.Path", monkeypatch: "pytest.MonkeyPatch"
) -> "None":
    monkeypatch.chdir(tmppath)
    monkeypatch.delenv(LOCAL_CONFIG_ENV_VAR, raising=False)
    assert default_config_filename() == pathlib.Path.cwd() / DEFAULT_LOCAL_CONFIG_RELNAME

    monkeypatch.setenv(LOCAL_CONFIG_ENV_VAR, "other.yml")
    assert default_config_filename() == pathlib.Path.cwd() / "other.yml"


def test_missing_config(tmppath: "pathlib.Path") -> "None":
    assert load_local_config(tmppath / "nowhere.yml") == {}
    assert load_local_config(None) == {}


def test_empty_config(tmppath: "pathlib.Path") -> "None":
    config_file = tmppath / "empty.yml"
    config_file.write_text("")
    local_config = load_local_config(config_file)

    assert local_config == {}
    assert progs_from_config(local_config)[DEFAULT_GIT_CMD] == "git"
    assert swh_setup_block(local_config) == {}
    assert swhid_policy_from_config(local_config) == SwhidPolicy.Lenient


def test_full_config(tmppath: "pathlib.Path") -> "None":
    config_file = tmppath / "full.yml"
    config_file.write_text(
        """
tools:
  gitCommand: /opt/git/bin/git
softwareHeritage:
  apiURL: https://swh.example.org/api/1/
  vaultRetries: 5
  vaultWaitSeconds: 0.5
  httpTimeout: 30
swhidPolicy: contextual
"""
    )
    local_config = load_local_config(config_file)

    assert progs_from_config(local_config)[DEFAULT_GIT_CMD] == "/opt/git/bin/git"
    assert swh_setup_block(local_config) == {
        "apiURL": "https://swh.example.org/api/1/",
        "vaultRetries": 5,
        "vaultWaitSeconds": 0.5,
        "httpTimeout": 30,
    }
    assert swhid_policy_from_config(local_config) == SwhidPolicy.Contextual


@pytest.mark.parametrize(
    ["content"],
    [
        ("swhidPolicy: whatever\n",),
        ("unknownKey: true\n",),
        ("softwareHeritage:\n  vaultRetries: 0\n",),
        ("softwareHeritage:\n  apiURL: ftp://swh.example.org/\n",),
        ("tools:\n  gitCommand: ''\n",),
        ("- just\n- a list\n",),
        ("tools: [unbalanced\n",),
    ],
)
def test_invalid_config(tmppath: "pathlib.Path", content: "str") -> "None":
    config_file = tmppath / "invalid.yml"
    config_file.write_text(content)

    with pytest.raises(ConfigValidationException):
        load_local_config(config_file)
