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
import shutil

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
    )

    from typing_extensions import (
        Final,
    )

    from ..common import (
        ProgsMapping,
        SecurityContextConfig,
        URIType,
    )

import urllib.error
import urllib.request

from . import (
    AbstractStatefulStreamingFetcher,
    FetcherException,
    FetchFailureReason,
)

from ..utils.misc import (
    build_http_opener,
)


class HTTPFetcher(AbstractStatefulStreamingFetcher):
    DEFAULT_TIMEOUT: "Final[float]" = 120.0

    def __init__(
        self,
        progs: "Optional[ProgsMapping]" = None,
        setup_block: "Optional[Mapping[str, Any]]" = None,
    ):
        super().__init__(progs=progs, setup_block=setup_block)

        self.timeout = float(self.setup_block.get("timeout", self.DEFAULT_TIMEOUT))

    @property
    def description(self) -> "str":
        return "HTTP and HTTPS download URLs"

    def streamfetch(
        self,
        remote_file: "URIType",
        dest_stream: "IO[bytes]",
        secContext: "Optional[SecurityContextConfig]" = None,
    ) -> "URIType":
        """
        Method to fetch contents from http and https.
        The security context is only used to provide the headers,
        the HTTP method and the payload of the request.

        :param remote_file:
        :param dest_stream:
        :param secContext:
        :return: The URI the contents were obtained from, after redirections
        """

        if isinstance(secContext, dict):
            headers = secContext.get("headers", {}).copy()
            method = secContext.get("method")
            data = secContext.get("data")
        else:
            headers = {}
            method = None
            data = None

        opener = build_http_opener()
        self.logger.debug(f"{method if method is not None else 'GET'} {remote_file}")
        try:
            req_remote = urllib.request.Request(
                remote_file, headers=headers, data=data, method=method
            )
            with opener.open(req_remote, timeout=self.timeout) as url_response:
                effective_uri = cast("URIType", url_response.url)

                while True:
                    try:
                        # Try getting it
                        shutil.copyfileobj(url_response, dest_stream)
                    except http.client.IncompleteRead as icread:
                        dest_stream.write(icread.partial)
                        # Restarting the copy
                        continue
                    break

        except urllib.error.HTTPError as he:
            raise FetcherException(
                "Error fetching {}: {} {}".format(
                    remote_file,
                    he.code,
                    he.reason,
                ),
                code=he.code,
                reason=FetchFailureReason.Transport,
            ) from he
        except (
            urllib.error.URLError,
            http.client.HTTPException,
            ValueError,
            OSError,
        ) as ue:
            # Malformed URLs are detected by urllib and http.client
            raise FetcherException(
                f"Error fetching {remote_file}: {ue}",
                reason=FetchFailureReason.Transport,
            ) from ue

        return effective_uri
