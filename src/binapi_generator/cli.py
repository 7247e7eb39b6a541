"""Command-line interface for generating Python bindings for VPP binary API modules.

Notes:
    - The inputs are the `*.api.json` files produced by the VPP API compiler.
    - The outputs of this generator require the `binapi_generator.api` runtime and Python >= 3.12.
"""

from __future__ import annotations

import argparse
import logging
import os.path
from collections.abc import Sequence

from binapi_generator.run import InvalidInputFileError, PyrightValidationError, run
from binapi_generator.schema import SchemaError

logger = logging.getLogger(__name__)


def _add_recursive_argument(parser: argparse.ArgumentParser):
    """Add a recursive argument to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the argument to.
    """
    parser.add_argument(
        "-r",
        "--recursive",
        dest="recursive",
        default=False,
        action="store_true",
        help="recursively search the input directory for *.api.json files.",
    )


def _add_flag(parser: argparse.ArgumentParser, flag: str, dest: str, help: str):
    parser.add_argument(flag, dest=dest, default=False, action="store_true", help=help)


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate Python bindings for VPP binary API modules.")

    parser.add_argument(
        "--input-file",
        dest="input_file",
        type=str,
        default="",
        help="input file with VPP API in JSON format.",
    )

    parser.add_argument(
        "--input-dir",
        dest="input_dir",
        type=str,
        default="",
        help="input directory with VPP API files in JSON format.",
    )

    parser.add_argument(
        "-o",
        "--output-dir",
        dest="output_dir",
        type=str,
        default=".",
        help="output directory where the package directories are generated.",
    )

    _add_flag(parser, "--include-apiver", "include_apiver", "include APIVersion and VersionCrc constants.")
    _add_flag(parser, "--include-comments", "include_comments", "include the JSON definitions as comments.")
    _add_flag(parser, "--include-binapi-names", "include_binapi_names", "include the binary API names in wire tags.")
    _add_flag(parser, "--include-services", "include_services", "include the service protocol and its client.")
    _add_flag(parser, "--continue-onerror", "continue_onerror", "continue with the next file on error.")
    _add_flag(parser, "--debug", "debug", "enable debug mode.")
    _add_flag(parser, "--no-format", "skip_format", "skip formatting the generated bindings with ruff.")
    _add_flag(parser, "--no-pyright", "skip_pyright", "skip pyright validation of generated bindings.")

    _add_recursive_argument(parser)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the binding generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code.
    """
    parser = setup_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    root_directory = os.getcwd()
    logger.debug("Working from root directory: %s", root_directory)

    try:
        run(args, root_directory)
    except (InvalidInputFileError, SchemaError, OSError, PyrightValidationError) as e:
        logger.error("binapi-generator: %s", e)
        return 1

    return 0
