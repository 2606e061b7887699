"""Tests for interactive selection helpers and MCP elicitation."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from titanium_mcp.cli.options import AndroidKeystore
from titanium_mcp.debug.prompts import (
    Confirmation,
    ElicitationPrompter,
    PickItem,
    Selection,
    TextInput,
    enter_android_keystore_info,
    select_device,
    select_ios_certificate,
    select_ios_provisioning_profile,
    select_platform,
)
from titanium_mcp.errors import ConfigurationError, UserCancellation

ITEMS = [
    PickItem(label="Simulator", id="simulator"),
    PickItem(label="Device", id="device", description="physical"),
]


def elicit_ctx(*results):
    ctx = MagicMock()
    ctx.elicit = AsyncMock(side_effect=list(results))
    return ctx


def accepted(data):
    return SimpleNamespace(action="accept", data=data)


class TestElicitationPrompter:
    """Tests for ElicitationPrompter."""

    @pytest.mark.asyncio
    async def test_choose_by_number(self):
        ctx = elicit_ctx(accepted(Selection(choice="2")))
        item = await ElicitationPrompter(ctx).choose_one(ITEMS, placeholder="Select a target")

        assert item.id == "device"
        message = ctx.elicit.call_args.kwargs["message"]
        assert message.splitlines() == ["Select a target", "1. Simulator", "2. Device (physical)"]
        assert ctx.elicit.call_args.kwargs["schema"] is Selection

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", ["Simulator", "simulator", " SIMULATOR "])
    async def test_choose_by_label_or_id(self, answer):
        ctx = elicit_ctx(accepted(Selection(choice=answer)))
        assert (await ElicitationPrompter(ctx).choose_one(ITEMS)).id == "simulator"

    @pytest.mark.asyncio
    async def test_unknown_choice_cancels(self):
        ctx = elicit_ctx(accepted(Selection(choice="7")))
        with pytest.raises(UserCancellation):
            await ElicitationPrompter(ctx).choose_one(ITEMS)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", ["decline", "cancel"])
    async def test_declined(self, action):
        ctx = elicit_ctx(SimpleNamespace(action=action, data=None))
        with pytest.raises(UserCancellation):
            await ElicitationPrompter(ctx).choose_one(ITEMS)

    @pytest.mark.asyncio
    async def test_empty_choice_list(self):
        with pytest.raises(ConfigurationError):
            await ElicitationPrompter(elicit_ctx()).choose_one([])

    @pytest.mark.asyncio
    async def test_confirm(self):
        ctx = elicit_ctx(accepted(Confirmation(confirmed=True)))
        assert await ElicitationPrompter(ctx).confirm("Select signing information?") is True
        assert ctx.elicit.call_args.kwargs["schema"] is Confirmation

    @pytest.mark.asyncio
    async def test_input_text_default(self):
        ctx = elicit_ctx(accepted(TextInput(value="  ")))
        value = await ElicitationPrompter(ctx).input_text("Keystore location", default="/k.jks")
        assert value == "/k.jks"
        assert ctx.elicit.call_args.kwargs["message"] == "Keystore location (default: /k.jks)"

    @pytest.mark.asyncio
    async def test_password_hides_default(self):
        ctx = elicit_ctx(accepted(TextInput(value="secret")))
        value = await ElicitationPrompter(ctx).input_text("Password", default="x", password=True)
        assert value == "secret"
        assert ctx.elicit.call_args.kwargs["message"] == "Password"


class TestSelectionHelpers:
    """Tests for selection helpers."""

    @pytest.mark.asyncio
    async def test_select_platform(self, make_prompter):
        prompter = make_prompter(["android"])
        item = await select_platform(prompter, ["ios", "android"])
        assert item.label == "Android"
        assert [i.id for i in prompter.last_items] == ["ios", "android"]

    @pytest.mark.asyncio
    async def test_select_platform_none_available(self, make_prompter):
        with pytest.raises(ConfigurationError):
            await select_platform(make_prompter([]), [])

    @pytest.mark.asyncio
    async def test_select_device(self, make_prompter, catalog):
        item = await select_device(make_prompter(["SIM-1"]), catalog, "ios", "simulator")
        assert item.id == "SIM-1"
        assert item.label == "iPhone 15"

    @pytest.mark.asyncio
    async def test_select_device_none_found(self, make_prompter, catalog):
        with pytest.raises(ConfigurationError, match="No Emulator devices"):
            await select_device(make_prompter([]), catalog, "windows", "emulator")

    @pytest.mark.asyncio
    async def test_expired_certificates_not_offered(self, make_prompter, catalog):
        prompter = make_prompter(["Apple Development: Jane Doe (ABC123)"])
        certificate = await select_ios_certificate(prompter, catalog, "run")
        assert certificate.label == "Jane Doe (ABC123)"
        assert len(prompter.last_items) == 1

    @pytest.mark.asyncio
    async def test_profiles_filtered_by_app_id(self, make_prompter, catalog):
        certificate = catalog.certificates[0]
        prompter = make_prompter(["PP-1"])
        profile = await select_ios_provisioning_profile(
            prompter, catalog, certificate, "device", "com.example.app"
        )
        assert profile.uuid == "PP-1"
        assert [i.id for i in prompter.last_items] == ["PP-1"]

    @pytest.mark.asyncio
    async def test_no_matching_profiles(self, make_prompter, catalog):
        with pytest.raises(ConfigurationError):
            await select_ios_provisioning_profile(
                make_prompter([]), catalog, catalog.certificates[0], "device", "org.unknown.app"
            )

    @pytest.mark.asyncio
    async def test_keystore_info(self, make_prompter):
        prompter = make_prompter(["/k.jks", "release", "secret"])
        keystore = await enter_android_keystore_info(prompter, ask_password=True)
        assert keystore == AndroidKeystore("/k.jks", "release", "secret")

    @pytest.mark.asyncio
    async def test_keystore_location_required(self, make_prompter):
        with pytest.raises(UserCancellation):
            await enter_android_keystore_info(make_prompter([""]))
