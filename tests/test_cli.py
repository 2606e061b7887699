"""Tests for CLI entry point - project root detection and arguments."""

import logging

import pytest

from titanium_mcp.__main__ import configure_logging, find_project_root, parse_args


class TestFindProjectRoot:
    """Tests for find_project_root function."""

    def test_finds_tiapp(self, tmp_path, monkeypatch):
        """Test that tiapp.xml is found from a subdirectory."""
        (tmp_path / "tiapp.xml").touch()
        subdir = tmp_path / "app" / "lib"
        subdir.mkdir(parents=True)
        monkeypatch.chdir(subdir)

        assert find_project_root() == str(tmp_path)

    def test_finds_module(self, tmp_path, monkeypatch):
        """Test that a module manifest is found."""
        (tmp_path / "manifest").touch()
        monkeypatch.chdir(tmp_path)

        assert find_project_root() == str(tmp_path)

    def test_finds_git_when_no_titanium_files(self, tmp_path, monkeypatch):
        """Test that .git is found as fallback."""
        (tmp_path / ".git").mkdir()
        subdir = tmp_path / "src"
        subdir.mkdir()
        monkeypatch.chdir(subdir)

        assert find_project_root() == str(tmp_path)

    def test_falls_back_to_cwd(self, tmp_path, monkeypatch):
        """Test fallback to CWD when no markers found."""
        monkeypatch.chdir(tmp_path)
        assert find_project_root() == str(tmp_path)

    def test_explicit_start(self, tmp_path):
        """Test searching from an explicit directory."""
        (tmp_path / "tiapp.xml").touch()
        subdir = tmp_path / "Resources"
        subdir.mkdir()

        assert find_project_root(subdir) == str(tmp_path)


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = parse_args([])
        assert args.project is None
        assert args.project_from_cwd is False

    def test_project(self):
        assert parse_args(["--project", "/work/app"]).project == "/work/app"

    def test_project_from_cwd(self):
        assert parse_args(["--project-from-cwd"]).project_from_cwd is True


class TestConfigureLogging:
    """Tests for logging configuration."""

    @pytest.mark.parametrize("level", ["DEBUG", "debug"])
    def test_log_level_from_env(self, monkeypatch, level):
        monkeypatch.setenv("LOG_LEVEL", level)
        root = logging.getLogger()
        handlers, old_level = root.handlers[:], root.level
        root.handlers = []
        try:
            configure_logging()
            assert root.level == logging.DEBUG
        finally:
            root.handlers = handlers
            root.setLevel(old_level)
