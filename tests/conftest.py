"""Pytest fixtures for titanium-mcp tests."""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from titanium_mcp.debug.environment import Certificate, Device, ProvisioningProfile  # noqa: E402


class ScriptedPrompter:
    """Prompter answering from a list of canned answers.

    choose_one answers are item ids. An exception instance in the list is
    raised instead of answering.
    """

    def __init__(self, answers=()):
        self.answers = list(answers)
        self.questions = []

    def _next(self, question):
        self.questions.append(question)
        if not self.answers:
            raise AssertionError(f"Unexpected question: {question}")
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def choose_one(self, items, *, placeholder=None):
        self.last_items = list(items)
        answer = self._next(placeholder)
        for item in items:
            if item.id == answer:
                return item
        raise AssertionError(f"{answer!r} not offered for {placeholder}: {[i.id for i in items]}")

    async def confirm(self, question):
        return bool(self._next(question))

    async def input_text(self, prompt, *, default=None, password=False):
        return self._next(prompt)


class FakeCatalog:
    """In-memory device catalog recording every lookup."""

    def __init__(self, devices=None, certificates=None, profiles=None):
        self.device_map = devices or {}
        self.certificates = certificates or []
        self.profiles = profiles or []
        self.calls = []

    async def devices(self, platform, target):
        self.calls.append(("devices", platform, target))
        return list(self.device_map.get((platform, target), []))

    async def ios_certificates(self, kind):
        self.calls.append(("ios_certificates", kind))
        return list(self.certificates)

    async def ios_provisioning_profiles(self, target):
        self.calls.append(("ios_provisioning_profiles", target))
        return list(self.profiles)


@pytest.fixture
def make_prompter():
    """Factory for scripted prompters."""
    return ScriptedPrompter


@pytest.fixture
def catalog():
    """Catalog with one device per run target and an iOS signing setup."""
    return FakeCatalog(
        devices={
            ("android", "emulator"): [Device("emulator-5554", "Pixel 7", "14")],
            ("android", "device"): [Device("R58M", "Galaxy S21", "13")],
            ("ios", "simulator"): [Device("SIM-1", "iPhone 15", "17.0")],
            ("ios", "device"): [Device("UDID-1", "Jane's iPhone", "17.1")],
        },
        certificates=[
            Certificate("Jane Doe (ABC123)", "Apple Development: Jane Doe (ABC123)"),
            Certificate("Old Cert (XYZ)", "Apple Development: Old Cert (XYZ)", expired=True),
        ],
        profiles=[
            ProvisioningProfile("PP-1", "Example Wildcard", "com.example.*"),
            ProvisioningProfile("PP-2", "Other App", "com.other.app"),
        ],
    )


@pytest.fixture
def make_process():
    """Factory for mock asyncio subprocesses."""

    def factory(returncode=0, stdout=(), stderr=(), communicate=(b"", b"")):
        process = MagicMock()
        process.returncode = returncode
        process.stdout = MagicMock()
        process.stdout.readline = AsyncMock(side_effect=[*stdout, b""])
        process.stderr = MagicMock()
        process.stderr.readline = AsyncMock(side_effect=[*stderr, b""])
        process.wait = AsyncMock(return_value=returncode)
        process.communicate = AsyncMock(return_value=communicate)
        process.kill = MagicMock()
        return process

    return factory
