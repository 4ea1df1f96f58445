"""Tests for the per-root sync configuration."""

import json
import logging
from datetime import datetime, timezone

import pytest

from azimuth_sync.exceptions import AzimuthIOError
from azimuth_sync.sync.state import SyncConfig, SyncConfigStore


@pytest.fixture
def store():
    return SyncConfigStore()


class TestSyncConfig:
    """Tests for SyncConfig serialization."""

    def test_to_dict(self):
        config = SyncConfig(
            provider="dropbox",
            credentials={"accessToken": "sl.abc"},
            last_sync="2025-01-15T10:30:00+00:00",
        )

        assert config.to_dict() == {
            "provider": "dropbox",
            "enabled": True,
            "credentials": {"accessToken": "sl.abc"},
            "last_sync": "2025-01-15T10:30:00+00:00",
        }

    def test_from_dict_defaults(self):
        config = SyncConfig.from_dict({"provider": "s3"})

        assert config.enabled is True
        assert config.credentials == {}
        assert config.last_sync is None
        assert config.last_sync_at is None

    def test_last_sync_at_parses_z_suffix(self):
        config = SyncConfig(provider="s3", last_sync="2025-01-15T10:30:00Z")

        assert config.last_sync_at == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_from_dict_rejects_bad_credentials(self):
        with pytest.raises(ValueError):
            SyncConfig.from_dict({"provider": "s3", "credentials": ["nope"]})


class TestSyncConfigStore:
    """Tests for loading and saving .sync_config.json."""

    def test_save_and_load_round_trip(self, store, tmp_path):
        config = SyncConfig(
            provider="s3",
            enabled=False,
            credentials={"bucket": "notes", "accessKey": "AK", "secretKey": "SK"},
            last_sync="2025-01-15T10:30:00+00:00",
        )

        store.save(tmp_path, config)
        loaded = store.load(tmp_path)

        assert loaded == config

    def test_saved_document_shape(self, store, tmp_path):
        store.save(tmp_path, SyncConfig(provider="onedrive"))

        data = json.loads((tmp_path / ".sync_config.json").read_text())
        assert set(data) == {"provider", "enabled", "credentials", "last_sync"}

    def test_load_missing_returns_none(self, store, tmp_path):
        assert store.load(tmp_path) is None

    def test_load_malformed_raises(self, store, tmp_path):
        (tmp_path / ".sync_config.json").write_text("{not json")

        with pytest.raises(AzimuthIOError, match="Invalid sync config"):
            store.load(tmp_path)

    def test_load_without_provider_raises(self, store, tmp_path):
        (tmp_path / ".sync_config.json").write_text('{"enabled": true}')

        with pytest.raises(AzimuthIOError):
            store.load(tmp_path)

    def test_last_writer_wins(self, store, tmp_path):
        store.save(tmp_path, SyncConfig(provider="s3"))
        store.save(tmp_path, SyncConfig(provider="dropbox"))

        assert store.load(tmp_path).provider == "dropbox"

    def test_mark_synced(self, store, tmp_path):
        config = SyncConfig(provider="googledrive")
        when = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)

        store.mark_synced(tmp_path, config, when)

        assert config.last_sync == "2025-03-01T08:00:00+00:00"
        assert store.load(tmp_path).last_sync_at == when

    def test_load_logs_provider_and_last_sync(self, store, tmp_path, caplog):
        store.save(
            tmp_path,
            SyncConfig(provider="dropbox", last_sync="2025-03-01T08:00:00+00:00"),
        )

        with caplog.at_level(logging.DEBUG, logger="azimuth_sync.sync.state"):
            store.load(tmp_path)

        assert (
            "Loaded sync config for provider dropbox "
            "(last sync: 2025-03-01T08:00:00+00:00)"
        ) in caplog.messages
