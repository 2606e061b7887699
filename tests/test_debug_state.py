"""Tests for debug configuration records and last-session stores."""

import json

import pytest

from titanium_mcp.debug.state import (
    DebugConfiguration,
    JsonFileStateStore,
    LastDebugState,
    MemoryStateStore,
)


class TestDebugConfiguration:
    """Tests for DebugConfiguration."""

    def test_from_dict_keeps_unknown_keys(self):
        config = DebugConfiguration.from_dict(
            {
                "type": "titanium",
                "request": "launch",
                "name": "Launch on iOS",
                "platform": "ios",
                "iOSCertificate": "Jane Doe (ABC123)",
                "preLaunchTask": "npm: build",
            }
        )
        assert config.platform == "ios"
        assert config.ios_certificate == "Jane Doe (ABC123)"
        assert config.extra == {"type": "titanium", "preLaunchTask": "npm: build"}

    def test_to_dict(self):
        config = DebugConfiguration(
            platform="android", target="emulator", port=9000, extra={"type": "titanium"}
        )
        assert config.to_dict() == {
            "type": "titanium",
            "request": "launch",
            "platform": "android",
            "port": 9000,
            "target": "emulator",
        }

    def test_needs_ios_signing(self):
        assert DebugConfiguration(platform="ios", target="device").needs_ios_signing
        assert not DebugConfiguration(platform="ios", target="simulator").needs_ios_signing
        assert not DebugConfiguration(platform="android", target="device").needs_ios_signing
        assert not DebugConfiguration(
            request="attach", platform="ios", target="device"
        ).needs_ios_signing

    def test_to_build_options(self):
        config = DebugConfiguration(
            project_dir="/p",
            platform="android",
            target="emulator",
            device_id="emulator-5554",
            debug_port=9000,
            log_level="trace",
        )
        options = config.to_build_options()
        assert options.debug_port == 9000
        assert options.log_level == "trace"
        assert options.device_id == "emulator-5554"

    def test_to_build_options_ios_signing(self):
        config = DebugConfiguration(
            project_dir="/p",
            platform="ios",
            target="device",
            ios_certificate="Jane Doe (ABC123)",
            ios_provisioning_profile="PP-1",
        )
        assert config.to_build_options().ios.provisioning_profile == "PP-1"

    def test_to_build_options_unresolved(self):
        with pytest.raises(ValueError):
            DebugConfiguration(platform="ios").to_build_options()


class TestLastDebugState:
    """Tests for LastDebugState parsing."""

    def test_round_trip(self):
        state = LastDebugState("device", "UDID-1", "Jane's iPhone", "Jane Doe (ABC123)", "PP-1")
        assert LastDebugState.from_dict(state.to_dict()) == state

    def test_android_record_has_no_signing(self):
        state = LastDebugState("emulator", "emulator-5554", "Pixel 7")
        assert state.to_dict() == {
            "target": "emulator",
            "deviceId": "emulator-5554",
            "deviceName": "Pixel 7",
        }

    @pytest.mark.parametrize(
        "record",
        [
            None,
            "emulator",
            [],
            {"deviceId": "x", "deviceName": "y"},
            {"target": "emulator", "deviceId": 5, "deviceName": "y"},
            {"target": "emulator", "deviceId": "x", "deviceName": 3},
            {"target": "device", "deviceId": "x", "deviceName": "y", "iOSCertificate": 1},
        ],
    )
    def test_malformed_records(self, record):
        with pytest.raises(ValueError):
            LastDebugState.from_dict(record)

    @pytest.mark.parametrize("name", [None, ""])
    def test_device_name_defaults_to_id(self, name):
        state = LastDebugState.from_dict(
            {"target": "emulator", "deviceId": "emulator-5554", "deviceName": name}
        )
        assert state.device_name == "emulator-5554"

    def test_snapshot_without_device_name(self):
        config = DebugConfiguration(platform="android", target="emulator", device_id="emulator-5554")
        state = LastDebugState.from_configuration(config)
        assert state.device_name == "emulator-5554"
        assert LastDebugState.from_dict(state.to_dict()) == state

    def test_apply_to(self):
        config = DebugConfiguration(platform="ios")
        LastDebugState("simulator", "SIM-1", "iPhone 15").apply_to(config)
        assert config.target == "simulator"
        assert config.device_id == "SIM-1"
        assert config.device_name == "iPhone 15"
        assert config.ios_certificate is None


class TestStateStores:
    """Tests for state stores."""

    @pytest.mark.asyncio
    async def test_memory_store(self):
        store = MemoryStateStore({"android": {"target": "emulator"}})
        assert await store.get("android") == {"target": "emulator"}
        assert await store.get("ios") is None
        await store.set("ios", {"target": "device"})
        assert await store.get("ios") == {"target": "device"}

    @pytest.mark.asyncio
    async def test_file_store_persists(self, tmp_path):
        path = tmp_path / "state" / "titanium.json"
        await JsonFileStateStore(path).set("android", {"target": "emulator"})

        assert await JsonFileStateStore(path).get("android") == {"target": "emulator"}
        assert json.loads(path.read_text()) == {"android": {"target": "emulator"}}

    @pytest.mark.asyncio
    async def test_file_store_keeps_other_keys(self, tmp_path):
        path = tmp_path / "titanium.json"
        store = JsonFileStateStore(path)
        await store.set("android", {"target": "emulator"})
        await store.set("ios", {"target": "simulator"})
        assert await store.get("android") == {"target": "emulator"}

    @pytest.mark.asyncio
    async def test_missing_file_reads_empty(self, tmp_path):
        assert await JsonFileStateStore(tmp_path / "none.json").get("ios") is None

    @pytest.mark.asyncio
    async def test_malformed_file_reads_empty(self, tmp_path):
        path = tmp_path / "titanium.json"
        path.write_text("{not json")
        store = JsonFileStateStore(path)

        assert await store.get("ios") is None
        await store.set("ios", {"target": "simulator"})
        assert await store.get("ios") == {"target": "simulator"}
