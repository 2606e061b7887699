"""Tests for the platform and target catalogue."""

import pytest

from titanium_mcp.cli.targets import (
    host_platforms,
    is_distribution_target,
    name_for_platform,
    name_for_target,
    normalised_platform,
    provisioning_profile_matches_app_id,
    run_targets_for_platform,
    target_for_name,
    targets_for_platform,
    validate_app_id,
)


class TestPlatforms:
    """Tests for platform helpers."""

    @pytest.mark.parametrize("alias", ["iphone", "ipad", "ios", "IOS"])
    def test_ios_aliases(self, alias):
        assert normalised_platform(alias) == "ios"

    def test_host_platforms(self):
        assert host_platforms("darwin") == ["ios", "android"]
        assert host_platforms("win32") == ["android", "windows"]
        assert host_platforms("linux") == ["android"]
        assert host_platforms("sunos5") == []

    def test_platform_names(self):
        assert name_for_platform("ios") == "iOS"
        assert name_for_platform("android") == "Android"
        assert name_for_platform("windows") == "Windows"


class TestTargets:
    """Tests for target helpers."""

    def test_targets_for_platform(self):
        assert targets_for_platform("ios") == ["simulator", "device", "dist-adhoc", "dist-appstore"]
        assert targets_for_platform("android") == ["emulator", "device", "dist-playstore"]
        assert targets_for_platform("blackberry") == []

    def test_run_targets_exclude_distribution(self):
        assert run_targets_for_platform("ios") == ["simulator", "device"]
        assert run_targets_for_platform("android") == ["emulator", "device"]

    def test_is_distribution_target(self):
        assert is_distribution_target("dist-playstore")
        assert not is_distribution_target("device")

    def test_target_names(self):
        assert name_for_target("simulator") == "Simulator"
        assert name_for_target("dist-appstore") == "App Store"
        assert name_for_target("dist-adhoc") == "Ad-Hoc"
        assert name_for_target("ws-local") == "ws-local"

    def test_target_for_name(self):
        assert target_for_name("App Store") == "dist-appstore"
        assert target_for_name("Emulator") == "emulator"
        assert target_for_name("Device", "windows") == "wp-device"


class TestAppIds:
    """Tests for application id validation and profile matching."""

    @pytest.mark.parametrize("app_id", ["com.example.app", "org.acme.App2", "a.b"])
    def test_valid_app_ids(self, app_id):
        assert validate_app_id(app_id)

    @pytest.mark.parametrize("app_id", ["app", "com..example", "1com.example", "com.example-app", ""])
    def test_invalid_app_ids(self, app_id):
        assert not validate_app_id(app_id)

    def test_profile_matching(self):
        assert provisioning_profile_matches_app_id("*", "com.example.app")
        assert provisioning_profile_matches_app_id("com.example.app", "com.example.app")
        assert provisioning_profile_matches_app_id("com.example.*", "com.example.app")
        assert not provisioning_profile_matches_app_id("com.other.*", "com.example.app")
        assert not provisioning_profile_matches_app_id("com.example.other", "com.example.app")
