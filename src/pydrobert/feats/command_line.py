# Copyright 2023 Sean Robertson

# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Script-like functions intended to be accessed by command line"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from pydrobert.feats.compute import FbankComputer, MfccComputer, SpectrogramComputer
from pydrobert.feats.util import InvalidConfigError

__all__ = [
    "print_feat_config",
]

_COMPUTERS = {
    "spectrogram": SpectrogramComputer,
    "fbank": FbankComputer,
    "mfcc": MfccComputer,
}


def _print_feat_config_parse_args(args: Optional[Sequence[str]]):
    parser = argparse.ArgumentParser(
        description="""Validate a feature configuration and print it back

Options are passed as --StructName.field=value, e.g. --FrameOpts.frame_length=200.
Anything not specified takes on its default. The output lists every option of the
feature computer, one per line, and can itself be passed back to this command (or
any other reading the same options) as a file prefixed with '@'.
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        fromfile_prefix_chars="@",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=False, help="Log more"
    )
    subparsers = parser.add_subparsers(
        dest="computer", metavar="COMPUTER", help="Which features to configure"
    )
    subparsers.required = True
    for name, computer_class in _COMPUTERS.items():
        subparser = subparsers.add_parser(
            name, help=f"{computer_class.__name__} options"
        )
        computer_class.options_class().parse_configure(subparser)
    return parser.parse_args(args)


def print_feat_config(args: Optional[Sequence[str]] = None) -> int:
    """Validate a feature configuration and print it back"""
    try:
        options = _print_feat_config_parse_args(args)
    except SystemExit as ex:
        return ex.code
    logger = logging.getLogger(sys.argv[0])
    logger.setLevel(logging.INFO if options.verbose else logging.WARNING)
    # bound to the current stderr, so removed when done
    handler = logging.StreamHandler()
    logger.addHandler(handler)
    try:
        computer_class = _COMPUTERS[options.computer]
        try:
            computer = computer_class(
                computer_class.options_class.from_namespace(options)
            )
        except InvalidConfigError as ex:
            logger.error(f"Invalid {options.computer} configuration: {ex}")
            return 1
        sys.stdout.write(computer.options.configure())
        logger.info(
            f"{options.computer} features have {computer.feature_dim} coefficients "
            "per frame"
        )
        return 0
    finally:
        logger.removeHandler(handler)
