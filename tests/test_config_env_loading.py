"""
Test environment file loading.

Tests that .env is found in the working directory or a parent, and
that already-set environment variables take precedence.
"""

import os

from promptpilot.core.config import DatabaseSettings, _load_env_file_if_available


def test_env_file_in_working_directory(monkeypatch, tmp_path):
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.delenv("MONGO_DB_NAME", raising=False)
    (tmp_path / ".env").write_text(
        "MONGO_URI=mongodb://from-env-file:27017/test\nMONGO_DB_NAME=from_env\n"
    )
    monkeypatch.chdir(tmp_path)

    _load_env_file_if_available()

    try:
        assert os.getenv("MONGO_URI") == "mongodb://from-env-file:27017/test"
        assert DatabaseSettings().db_name == "from_env"
    finally:
        os.environ.pop("MONGO_URI", None)
        os.environ.pop("MONGO_DB_NAME", None)


def test_env_file_search_in_parent_directories(monkeypatch, tmp_path):
    monkeypatch.delenv("CACHE_NAMESPACE", raising=False)
    (tmp_path / ".env").write_text("CACHE_NAMESPACE=from_parent\n")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    _load_env_file_if_available()

    try:
        assert os.getenv("CACHE_NAMESPACE") == "from_parent"
    finally:
        os.environ.pop("CACHE_NAMESPACE", None)


def test_already_set_env_vars_take_precedence(monkeypatch, tmp_path):
    """Test that already-set environment variables are not overridden."""
    monkeypatch.setenv("MONGO_URI", "mongodb://already-set:27017/test")
    monkeypatch.setenv("MONGO_DB_NAME", "already_set")
    (tmp_path / ".env").write_text(
        "MONGO_URI=mongodb://from-env-file:27017/test\nMONGO_DB_NAME=from_env\n"
    )
    monkeypatch.chdir(tmp_path)

    _load_env_file_if_available()

    assert os.getenv("MONGO_URI") == "mongodb://already-set:27017/test"
    assert os.getenv("MONGO_DB_NAME") == "already_set"


def test_no_env_files_no_crash(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    _load_env_file_if_available()
