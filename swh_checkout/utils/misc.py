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

import http.client
import json
import os

from typing import (
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        Any,
        Mapping,
        MutableSequence,
        Sequence,
        Type,
        Union,
    )

    from jsonschema.exceptions import ValidationError

    from ..common import (
        RelPath,
    )

import urllib.request

import jsonschema.validators

# This is needed because jsonschema does not include the version variable
# AND it breaks its backward compatibility in minor releases
import referencing

from ..common import ConfigValidationException


SCHEMAS_REL_DIR = "schemas"


def config_validate(
    configToValidate: "Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]",
    relSchemaFile: "RelPath",
) -> "Sequence[ValidationError]":
    # Locating the schemas directory, where all the schemas should be placed
    schemaFile = os.path.join(
        os.path.dirname(__file__), "..", SCHEMAS_REL_DIR, relSchemaFile
    )

    try:
        with open(schemaFile, mode="r", encoding="utf-8") as sF:
            schema = json.load(sF)

        jv = jsonschema.validators.validator_for(schema)(
            schema, registry=referencing.Registry()
        )

        return list(jv.iter_errors(instance=configToValidate))
    except Exception as e:
        raise ConfigValidationException(
            f"FATAL ERROR: corrupted schema {relSchemaFile}. Reason: {e}"
        ) from e


def build_http_opener() -> "urllib.request.OpenerDirector":
    """
    Opener which only speaks HTTP and, when available, HTTPS.
    Redirections are followed, and any other scheme is rejected
    by the UnknownHandler
    """
    handler_classes: "MutableSequence[Type[urllib.request.BaseHandler]]" = [
        urllib.request.ProxyHandler,
        urllib.request.UnknownHandler,
        urllib.request.HTTPHandler,
        urllib.request.HTTPRedirectHandler,
        urllib.request.HTTPDefaultErrorHandler,
        urllib.request.HTTPErrorProcessor,
    ]
    if hasattr(http.client, "HTTPSConnection"):
        handler_classes.append(urllib.request.HTTPSHandler)

    opener = urllib.request.OpenerDirector()
    for klass in handler_classes:
        opener.add_handler(klass())

    return opener
