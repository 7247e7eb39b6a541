"""Top-level module for binding generation."""

from __future__ import annotations

import argparse
import logging
import os.path
import subprocess
from dataclasses import dataclass

from binapi_generator import helper
from binapi_generator.schema import SchemaError, load_package_text
from binapi_generator.writer import Writer
from binapi_generator.writer_dto import GeneratorOptions

logger = logging.getLogger(__name__)

OUTPUT_FILE_SUFFIX = "_binapi.py"
PACKAGE_INIT_FILE = "__init__.py"
PY_TYPED_FILE = "py.typed"

FORMAT_LINE_LENGTH = 120
# ruff picks its rules by file name when it reads from stdin
RUFF_STDIN_FILENAME = "bindings.py"


class InvalidInputFileError(Exception):
    """Raised when an input file is not a VPP binary API definition in JSON format."""

    pass


class PyrightValidationError(Exception):
    """Raised when pyright validation finds type errors in generated bindings."""

    pass


@dataclass(frozen=True)
class GenerationContext:
    """Names and paths of one code generation task.

    Attributes:
        input_file: The `*.api.json` file to read.
        output_file: The Python module to write.
        module_name: Name of the VPP binary API module.
        package_name: Name of the generated Python package.
    """

    input_file: str
    output_file: str
    module_name: str
    package_name: str

    @property
    def package_dir(self) -> str:
        return os.path.dirname(self.output_file)


def get_context(input_file: str, output_dir: str) -> GenerationContext:
    """Compute the names and paths of a code generation task.

    Args:
        input_file (str): Path of the `*.api.json` file.
        output_dir (str): Directory in which the package directory is created.

    Raises:
        InvalidInputFileError: If the input file does not have the `.api.json` extension.

    Returns:
        GenerationContext: The context of the task.
    """
    if not input_file.endswith(helper.INPUT_FILE_EXT):
        raise InvalidInputFileError(f"invalid input file name: {input_file!r}")

    module_name = helper.module_name_from_file(input_file)
    package_name = helper.package_name(module_name)
    output_file = os.path.join(output_dir, package_name, f"{package_name}{OUTPUT_FILE_SUFFIX}")

    return GenerationContext(
        input_file=input_file,
        output_file=output_file,
        module_name=module_name,
        package_name=package_name,
    )


def _ruff(arguments: list[str], source: str) -> str:
    """Run ruff on `source` through stdin and return what it writes to stdout."""
    result = subprocess.run(
        ["ruff", *arguments, "--stdin-filename", RUFF_STDIN_FILENAME, "-"],
        input=source,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


def format_outputs(raw_input: str) -> str:
    """Sort the imports of a generated module and format it with ruff.

    Args:
        raw_input (str): The unformatted module text.

    Returns:
        str: The formatted text, or `raw_input` when ruff is not installed or rejects it.
    """
    try:
        sorted_imports = _ruff(["check", "--fix", "--select", "I", "--quiet"], raw_input)
        return _ruff(["format", "--line-length", str(FORMAT_LINE_LENGTH)], sorted_imports)
    except FileNotFoundError:
        logger.warning("ruff not found, writing unformatted output")
    except subprocess.CalledProcessError as e:
        logger.error("ruff could not format the bindings (exit code %d): %s", e.returncode, e.stderr.strip())
    return raw_input


def _write_if_missing(path: str, content: str):
    if not os.path.exists(path):
        with open(path, "w", encoding="utf8") as f:
            f.write(content)


def generate_from_file(ctx: GenerationContext, options: GeneratorOptions, format_output: bool = True) -> str:
    """Generate the bindings package for one `*.api.json` file.

    Besides the bindings module, the package directory receives an `__init__.py` and a `py.typed`
    marker (PEP 561) unless they exist already.

    Args:
        ctx (GenerationContext): The context of the task.
        options (GeneratorOptions): Switches for the optional parts of the output.
        format_output (bool): Whether to format the output with ruff.

    Raises:
        SchemaError: If the input is not a valid VPP binary API definition.
        OSError: If reading the input or writing the output fails.

    Returns:
        str: The path of the written bindings module.
    """
    logger.debug("generating from file %r", ctx.input_file)

    with open(ctx.input_file, encoding="utf8") as input_file:
        source_text = input_file.read()

    package = load_package_text(ctx.module_name, source_text)

    writer = Writer(
        package,
        options,
        source_text=source_text,
        input_file=ctx.input_file,
        package_name=ctx.package_name,
    )
    output = writer.dumps()

    if format_output:
        output = format_outputs(output)

    os.makedirs(ctx.package_dir, exist_ok=True)

    with open(ctx.output_file, "w", encoding="utf8") as output_file:
        output_file.write(output)

    _write_if_missing(
        os.path.join(ctx.package_dir, PACKAGE_INIT_FILE),
        f'"""Bindings for VPP binary API module \'{ctx.module_name}\'."""\n',
    )
    _write_if_missing(os.path.join(ctx.package_dir, PY_TYPED_FILE), "")

    logger.info("Wrote bindings for module %r to '%s'.", ctx.module_name, ctx.output_file)

    return ctx.output_file


def validate_with_pyright(output_files: list[str]) -> None:
    """Type check generated bindings modules with pyright.

    Args:
        output_files: The generated bindings modules.

    Raises:
        PyrightValidationError: If pyright is not installed or reports errors.
    """
    if not output_files:
        logger.warning("No bindings to validate")
        return

    logger.info("Checking %d bindings module(s) with pyright", len(output_files))

    try:
        result = subprocess.run(["pyright", *output_files], capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise PyrightValidationError("pyright is not installed; install it or pass --no-pyright") from e

    errors = result.stdout.count(" error:")
    if errors or result.returncode != 0:
        raise PyrightValidationError(f"pyright reported {errors} error(s) in the generated bindings:\n\n{result.stdout}")

    logger.info("pyright reported no errors")


def options_from_args(args: argparse.Namespace) -> GeneratorOptions:
    """Collect the generator switches from the parsed arguments."""
    return GeneratorOptions(
        include_api_version=getattr(args, "include_apiver", False),
        include_comments=getattr(args, "include_comments", False),
        include_binapi_names=getattr(args, "include_binapi_names", False),
        include_services=getattr(args, "include_services", False),
    )


def find_input_files(input_dir: str, recursive: bool = False) -> list[str]:
    """All `*.api.json` files in a directory, sorted by path.

    Args:
        input_dir (str): The directory to search.
        recursive (bool): Whether to search subdirectories as well.

    Returns:
        list[str]: Paths of the input files.
    """
    input_files: list[str] = []

    if recursive:
        for root, _, files in os.walk(input_dir):
            for file in files:
                if file.endswith(helper.INPUT_FILE_EXT):
                    input_files.append(os.path.join(root, file))
    else:
        for file in os.listdir(input_dir):
            file_path = os.path.join(input_dir, file)
            if os.path.isfile(file_path) and file.endswith(helper.INPUT_FILE_EXT):
                input_files.append(file_path)

    return sorted(input_files)


def run(args: argparse.Namespace, root_directory: str) -> list[str]:
    """Run the generator on a single input file or on all input files of a directory.

    Uses `generate_from_file` on each input file.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the generator.
        root_directory (str): The directory, from which the generator is executed.

    Raises:
        InvalidInputFileError: If neither or both of an input file and an input directory are given,
            or the input file has the wrong extension.
        SchemaError: If a module is not a valid definition and errors are not skipped.
        OSError: If reading or writing fails and errors are not skipped.
        PyrightValidationError: If the generated bindings do not pass validation.

    Returns:
        list[str]: Paths of the written bindings modules.
    """
    input_file: str = getattr(args, "input_file", "")
    input_dir: str = getattr(args, "input_dir", "")
    output_dir: str = os.path.join(root_directory, getattr(args, "output_dir", "."))
    continue_on_error: bool = getattr(args, "continue_onerror", False)
    skip_pyright: bool = getattr(args, "skip_pyright", False)
    format_output: bool = not getattr(args, "skip_format", False)

    options = options_from_args(args)

    if bool(input_file) == bool(input_dir):
        raise InvalidInputFileError("exactly one of an input file and an input directory must be given")

    output_files: list[str] = []

    if input_file:
        ctx = get_context(os.path.join(root_directory, input_file), output_dir)
        output_files.append(generate_from_file(ctx, options, format_output))

    else:
        input_files = find_input_files(os.path.join(root_directory, input_dir), getattr(args, "recursive", False))
        logger.info("Found %d input file(s) in '%s'.", len(input_files), input_dir)

        for path in input_files:
            try:
                ctx = get_context(path, output_dir)
                output_files.append(generate_from_file(ctx, options, format_output))
            except (SchemaError, OSError) as e:
                if not continue_on_error:
                    raise
                logger.warning("Generating bindings from '%s' failed, skipping it: %s", path, e)

    if not skip_pyright:
        validate_with_pyright(output_files)

    return output_files
