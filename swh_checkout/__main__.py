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

import argparse
import logging
import os
import pathlib
import sys

from typing import (
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from typing import (
        NoReturn,
        Optional,
        Sequence,
    )

    from typing_extensions import (
        NotRequired,
        TypedDict,
    )

    class BasicLoggingConfigDict(TypedDict):
        filename: NotRequired[str]
        format: str
        level: int


from . import get_swh_checkout_version_str
from .common import (
    AbstractSwhCheckoutException,
    ArgsDefaultWithRawHelpFormatter,
)
from .config import (
    default_config_filename,
    LOCAL_CONFIG_ENV_VAR,
    load_local_config,
    progs_from_config,
    swh_setup_block,
    swhid_policy_from_config,
)
from .fetchers.git import GitFetcher
from .fetchers.swh import SoftwareHeritageFetcher
from .orchestrator import CheckoutOrchestrator
from .validators import SwhidPolicy

LOGGING_FORMAT = "%(asctime)-15s - [%(levelname)s] %(message)s"
DEBUG_LOGGING_FORMAT = (
    "%(asctime)-15s - [%(name)s %(funcName)s %(lineno)d][%(levelname)s] %(message)s"
)


class SwhCheckoutArgumentParser(argparse.ArgumentParser):
    """
    Usage errors share the exit code of any other failure
    """

    def error(self, message: "str") -> "NoReturn":
        self.print_usage(sys.stderr)
        self.exit(1, f"ERROR: {message}\n")


def get_swh_checkout_argparse() -> "argparse.ArgumentParser":
    verstr = get_swh_checkout_version_str()

    ap = SwhCheckoutArgumentParser(
        description="Checkout a git commit, either from its live repository or from the Software Heritage archive "
        + verstr,
        formatter_class=ArgsDefaultWithRawHelpFormatter,
    )

    selectors = ap.add_argument_group(
        "selectors",
        "Either an URL together with a commit, or a SWHID",
    )
    selectors.add_argument(
        "-u",
        "--url",
        dest="url",
        help="URL of the git repository (http:// or https://)",
    )
    selectors.add_argument(
        "-c",
        "--commit",
        dest="commit",
        help="Full 40 hexadecimal digits commit hash",
    )
    selectors.add_argument(
        "-s",
        "--swhid",
        dest="swhid",
        help="raw|Software Heritage identifier of a directory, revision or snapshot.\nDirectory ones need both origin and anchor attributes,\nand revision ones the origin attribute, to be fetched from git.\nOtherwise, they are fetched from the archive into --directory",
    )
    ap.add_argument(
        "-d",
        "--directory",
        dest="directory",
        help="Destination directory, which must not exist. When it is not set, it is derived from the repository URL",
    )

    ap.add_argument(
        "--log-file",
        dest="logFilename",
        help="Store messages in a file instead of using standard error",
    )
    ap.add_argument(
        "-q",
        "--quiet",
        dest="logLevel",
        action="store_const",
        const=logging.WARNING,
        help="Only show warnings and errors",
    )
    ap.add_argument(
        "-v",
        "--verbose",
        dest="logLevel",
        action="store_const",
        const=logging.INFO,
        help="Show verbose (informational) messages",
    )
    ap.add_argument(
        "--debug",
        dest="logLevel",
        action="store_const",
        const=logging.DEBUG,
        help="Show debug messages",
    )
    ap.add_argument(
        "-L",
        "--local-config",
        dest="localConfigFilename",
        help=f"Local configuration file (can also be set up through {LOCAL_CONFIG_ENV_VAR} environment variable)",
    )
    ap.add_argument(
        "--swh-api",
        dest="swhApiURL",
        help="Software Heritage archive API base URL",
    )
    ap.add_argument(
        "--strict-swhid",
        dest="strictSwhid",
        action="store_true",
        default=False,
        help=f"Use the {SwhidPolicy.Contextual.value} SWHID policy: {SwhidPolicy.Contextual.description}",
    )
    ap.add_argument(
        "-V", "--version", action="version", version="%(prog)s version " + verstr
    )

    return ap


def main(argv: "Optional[Sequence[str]]" = None) -> None:
    ap = get_swh_checkout_argparse()
    args = ap.parse_args(argv)

    # Setting up the log
    logLevel = logging.INFO
    if args.logLevel:
        logLevel = args.logLevel

    if logLevel < logging.INFO:
        logFormat = DEBUG_LOGGING_FORMAT
    else:
        logFormat = LOGGING_FORMAT

    loggingConf: "BasicLoggingConfigDict" = {"format": logFormat, "level": logLevel}

    if args.logFilename is not None:
        loggingConf["filename"] = args.logFilename

    logging.basicConfig(**loggingConf)

    try:
        # First, try loading the configuration file
        explicitConfig = (
            args.localConfigFilename is not None
            or os.environ.get(LOCAL_CONFIG_ENV_VAR) is not None
        )
        if args.localConfigFilename is not None:
            localConfigFilename = pathlib.Path(args.localConfigFilename).absolute()
        else:
            localConfigFilename = default_config_filename()

        if explicitConfig and not localConfigFilename.exists():
            print(
                "[WARNING] Configuration file {} does not exist".format(
                    localConfigFilename
                ),
                file=sys.stderr,
            )
        local_config = load_local_config(localConfigFilename)

        setup_block = dict(swh_setup_block(local_config))
        if args.swhApiURL is not None:
            setup_block["apiURL"] = args.swhApiURL

        swhid_policy = (
            SwhidPolicy.Contextual
            if args.strictSwhid
            else swhid_policy_from_config(local_config)
        )

        progs = progs_from_config(local_config)
        orchestrator = CheckoutOrchestrator(
            GitFetcher(progs=progs),
            SoftwareHeritageFetcher(progs=progs, setup_block=setup_block),
            swhid_policy=swhid_policy,
        )

        outcome = orchestrator.checkout(
            url=args.url,
            commit=args.commit,
            swhid=args.swhid,
            directory=args.directory,
        )
    except AbstractSwhCheckoutException as e:
        logging.debug("Checkout failed", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    logging.info(
        f"Checked out into {outcome.directory} from {outcome.source.value} ({outcome.strategy.value})"
    )
    sys.exit(0)


if __name__ == "__main__":
    main()
