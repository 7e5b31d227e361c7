"""Tests for run mode selection."""

from __future__ import annotations

import pytest

from stitch.core.config import RunConfig
from stitch.core.errors import ConfigError
from stitch.core.modes import RunMode, resolve_run_mode


def _config(tmp_path, **kwargs) -> RunConfig:
    return RunConfig(root=tmp_path, **kwargs)


def test_quiet_and_verbose_conflict(tmp_path):
    config = _config(tmp_path, quiet=True, verbose=True, entries=("a.js",))
    with pytest.raises(ConfigError, match="--quiet and --verbose"):
        resolve_run_mode(config, stdin_is_tty=True)


def test_quiet_verbose_checked_before_stdout_conflict(tmp_path):
    config = _config(tmp_path, quiet=True, verbose=True, stdout=True, entries=("a.js", "b.js"))
    with pytest.raises(ConfigError, match="--quiet and --verbose"):
        resolve_run_mode(config, stdin_is_tty=False)


def test_stdout_with_many_entries_conflicts(tmp_path):
    config = _config(tmp_path, stdout=True, entries=("a.js", "b.js"))
    with pytest.raises(ConfigError, match="--stdout with multiple entries"):
        resolve_run_mode(config, stdin_is_tty=True)


def test_stdout_with_one_entry(tmp_path):
    config = _config(tmp_path, stdout=True, entries=("a.js",))
    assert resolve_run_mode(config, stdin_is_tty=False) is RunMode.STDOUT


@pytest.mark.parametrize("stdin_is_tty", [True, False])
def test_entries_mean_batch(tmp_path, stdin_is_tty):
    config = _config(tmp_path, entries=("a.js", "b.css"))
    assert resolve_run_mode(config, stdin_is_tty=stdin_is_tty) is RunMode.BATCH


def test_piped_input_without_entries(tmp_path):
    assert resolve_run_mode(_config(tmp_path), stdin_is_tty=False) is RunMode.STDIN


def test_stdout_flag_without_entries_reads_stdin(tmp_path):
    config = _config(tmp_path, stdout=True)
    assert resolve_run_mode(config, stdin_is_tty=False) is RunMode.STDIN


def test_interactive_without_entries_shows_help(tmp_path):
    assert resolve_run_mode(_config(tmp_path), stdin_is_tty=True) is RunMode.HELP
