"""Pytest configuration and fixtures for binapi generator tests."""

from __future__ import annotations

import dataclasses
import importlib.util
import logging
import shutil
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

import pytest

from binapi_generator.cli import main
from binapi_generator.schema import Package, load_package_file

# Test directory structure
TESTS_DIR = Path(__file__).parent
SCHEMAS_DIR = TESTS_DIR / "schemas"
GENERATED_DIR = TESTS_DIR / "_generated"

INTERFACE_SCHEMA = SCHEMAS_DIR / "interface.api.json"
VPE_SCHEMA = SCHEMAS_DIR / "vpe.api.json"
CHOICE_SCHEMA = SCHEMAS_DIR / "choice.api.json"


@pytest.fixture(scope="session", autouse=True)
def generate_all_bindings():
    """Generate the bindings of all test schemas once at the beginning of the test session.

    All optional parts are enabled, so the generated modules contain everything the generator can produce.
    """
    logger = logging.getLogger(__name__)
    logger.info("Generating all test bindings...")

    if GENERATED_DIR.exists():
        shutil.rmtree(GENERATED_DIR)
    GENERATED_DIR.mkdir(parents=True, exist_ok=True)

    code = main(
        [
            "--input-dir",
            str(SCHEMAS_DIR),
            "-o",
            str(GENERATED_DIR),
            "--include-apiver",
            "--include-comments",
            "--include-binapi-names",
            "--include-services",
            "--no-format",
            "--no-pyright",
        ]
    )
    if code != 0:
        pytest.fail("Generating the test bindings failed")

    return GENERATED_DIR


def load_bindings(module_file: Path, module_name: str) -> ModuleType:
    """Import a generated bindings module from its file.

    The module is registered in `sys.modules`, which the runtime needs to resolve wire type names.
    """
    spec = importlib.util.spec_from_file_location(module_name, module_file)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


def load_source(source: str, module_name: str) -> ModuleType:
    """Execute generated source text as a module registered in `sys.modules`."""
    module = ModuleType(module_name)
    sys.modules[module_name] = module
    exec(compile(source, module_name, "exec"), module.__dict__)
    return module


@pytest.fixture(scope="session")
def interface_bindings(generate_all_bindings: Path) -> ModuleType:
    """The generated bindings of the interface test module."""
    return load_bindings(generate_all_bindings / "interface" / "interface_binapi.py", "interface_binapi")


@pytest.fixture(scope="session")
def vpe_bindings(generate_all_bindings: Path) -> ModuleType:
    """The generated bindings of the vpe test module."""
    return load_bindings(generate_all_bindings / "vpe" / "vpe_binapi.py", "vpe_binapi")


@pytest.fixture(scope="session")
def choice_bindings(generate_all_bindings: Path) -> ModuleType:
    """The generated bindings of the module with text inside a union."""
    return load_bindings(generate_all_bindings / "choice" / "choice_binapi.py", "choice_binapi")


@pytest.fixture(scope="session")
def interface_package() -> Package:
    return load_package_file(str(INTERFACE_SCHEMA))


@pytest.fixture(scope="session")
def vpe_package() -> Package:
    return load_package_file(str(VPE_SCHEMA))


@pytest.fixture(scope="session")
def choice_package() -> Package:
    return load_package_file(str(CHOICE_SCHEMA))


def copy_fields(src: Any, dst: Any):
    """Copy all dataclass fields of `src` onto `dst`."""
    for f in dataclasses.fields(src):
        setattr(dst, f.name, getattr(src, f.name))


class FakeRequest:
    """Single-reply request that answers with a canned reply or fails."""

    def __init__(self, reply: Any = None, error: Exception | None = None):
        self._reply = reply
        self._error = error

    def receive_reply(self, msg: Any) -> None:
        if self._error is not None:
            raise self._error
        if self._reply is not None:
            copy_fields(self._reply, msg)


class FakeMultiRequest:
    """Multi-reply request that answers with canned replies, then signals the end."""

    def __init__(self, replies: list[Any], error: Exception | None = None):
        self._replies = list(replies)
        self._error = error

    def receive_reply(self, msg: Any) -> bool:
        if self._error is not None:
            raise self._error
        if not self._replies:
            return True
        copy_fields(self._replies.pop(0), msg)
        return False


class FakeChannel:
    """Channel that records sent requests and answers them with canned replies."""

    def __init__(self, replies: list[Any] | None = None, error: Exception | None = None):
        self.replies = replies or []
        self.error = error
        self.sent: list[Any] = []

    def send_request(self, msg: Any) -> FakeRequest:
        self.sent.append(msg)
        return FakeRequest(self.replies[0] if self.replies else None, self.error)

    def send_multi_request(self, msg: Any) -> FakeMultiRequest:
        self.sent.append(msg)
        return FakeMultiRequest(self.replies, self.error)
