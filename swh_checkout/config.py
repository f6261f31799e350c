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

import logging
import os
import pathlib

from typing import (
    cast,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        Any,
        Mapping,
        MutableMapping,
        Optional,
    )

    from typing_extensions import (
        Final,
    )

    from .common import (
        AnyPath,
        ProgsMapping,
        RelPath,
    )

import yaml

from .common import (
    ConfigValidationException,
    DEFAULT_GIT_CMD,
    DEFAULT_PROGS,
)
from .utils.misc import config_validate
from .validators import SwhidPolicy

DEFAULT_LOCAL_CONFIG_RELNAME: "Final[str]" = "swh_checkout_config.yml"
LOCAL_CONFIG_ENV_VAR: "Final[str]" = "SWH_CHECKOUT_CONFIG_FILE"
CONFIG_SCHEMA: "Final[RelPath]" = cast("RelPath", "config.json")


def default_config_filename() -> "pathlib.Path":
    """
    The configuration file from the environment, or the one
    in the current working directory
    """
    env_config_filename = os.environ.get(LOCAL_CONFIG_ENV_VAR)
    if env_config_filename is None:
        return pathlib.Path.cwd() / DEFAULT_LOCAL_CONFIG_RELNAME

    return pathlib.Path(env_config_filename).absolute()


def load_local_config(
    config_filename: "Optional[pathlib.Path]",
    logger: "Optional[logging.Logger]" = None,
) -> "MutableMapping[str, Any]":
    if logger is None:
        logger = logging.getLogger(__name__)

    local_config: "MutableMapping[str, Any]"
    if config_filename is not None and config_filename.exists():
        try:
            with config_filename.open(mode="r", encoding="utf-8") as cf:
                local_config = yaml.safe_load(cf)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationException(
                f"Unable to read configuration file {config_filename}: {e}"
            ) from e

        # An empty file is an empty configuration
        if local_config is None:
            local_config = {}

        errors = config_validate(local_config, CONFIG_SCHEMA)
        if len(errors) > 0:
            for error in errors:
                logger.error(
                    f"\tPath: {'/'.join(map(str, error.path))} . Message: {error.message}"
                )
            raise ConfigValidationException(
                f"Configuration file {config_filename} is not valid ({len(errors)} errors)"
            )
        logger.debug(f"Configuration read from {config_filename}")
    else:
        local_config = {}

    return local_config


def progs_from_config(local_config: "Mapping[str, Any]") -> "ProgsMapping":
    progs = dict(DEFAULT_PROGS)
    git_cmd = local_config.get("tools", {}).get("gitCommand")
    if git_cmd is not None:
        progs[DEFAULT_GIT_CMD] = cast("AnyPath", git_cmd)

    return progs


def swh_setup_block(local_config: "Mapping[str, Any]") -> "Mapping[str, Any]":
    return cast("Mapping[str, Any]", local_config.get("softwareHeritage", {}))


def swhid_policy_from_config(local_config: "Mapping[str, Any]") -> "SwhidPolicy":
    return SwhidPolicy(local_config.get("swhidPolicy", SwhidPolicy.Lenient.value))
