"""Tests for application startup wiring."""
import shutil

import pytest

from zettelvc import main as main_module
from zettelvc.exceptions import StorageError
from zettelvc.tui.modes import ListMode

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@needs_git
def test_build_controller_initializes_repository(test_config):
    controller = main_module.build_controller()
    assert (test_config.repo_path / ".git").is_dir()
    assert controller.mode == ListMode()
    assert controller.status is None
    assert controller.history_limit == test_config.history_limit


@needs_git
def test_build_controller_prepares_export_directory(test_config):
    assert not test_config.export_dir.exists()
    controller = main_module.build_controller()
    assert controller.export_dir == test_config.export_dir
    assert test_config.export_dir.is_dir()


@needs_git
def test_skipped_records_surface_as_status(test_config):
    main_module.build_controller()
    (test_config.repo_path / "notes" / "broken.json").write_text("{")
    controller = main_module.build_controller()
    assert "1 unreadable records skipped" in controller.status.message


def test_storage_failure_exits_with_code_1(test_config, monkeypatch, capsys):
    def failing():
        raise StorageError("cannot list notes", operation="read")

    monkeypatch.setattr(main_module, "build_controller", failing)
    monkeypatch.setattr(main_module, "configure_logging", lambda *a, **k: None)
    with pytest.raises(SystemExit) as exc_info:
        main_module.main([])
    assert exc_info.value.code == 1
    assert "cannot open repository" in capsys.readouterr().err
