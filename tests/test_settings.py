"""
Tests for the settings store (focus_engine/settings.py) and the /settings API endpoints.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from focus_engine.settings import DEFAULTS, SettingsStore, normalize_host, normalize_sites


# ── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture()
def tmp_settings_file(tmp_path: Path):
    return tmp_path / "settings.json"


@pytest.fixture()
def store(tmp_settings_file):
    s = SettingsStore(tmp_settings_file)
    s.load()
    return s


# ── Unit tests: settings store ────────────────────────────────────────────────

class TestSettingsDefaults:
    def test_get_returns_all_defaults(self, store):
        s = store.get()
        for key, val in DEFAULTS.items():
            assert s[key] == val

    def test_get_returns_copy(self, store):
        s1 = store.get()
        s1["focusMinutes"] = 9999
        s1["blockedSites"].append("evil.com")
        s2 = store.get()
        assert s2["focusMinutes"] == DEFAULTS["focusMinutes"]
        assert "evil.com" not in s2["blockedSites"]

    def test_defaults_contain_expected_keys(self):
        assert set(DEFAULTS) == {
            "focusMinutes",
            "shortBreakMinutes",
            "longBreakMinutes",
            "cyclesBeforeLongBreak",
            "enableNotifications",
            "enableChime",
            "blockedSites",
        }


class TestUpdateSettings:
    def test_update_single_key(self, store):
        store.update({"focusMinutes": 40})
        assert store["focusMinutes"] == 40

    def test_update_persists_to_disk(self, store, tmp_settings_file):
        store.update({"cyclesBeforeLongBreak": 3})
        saved = json.loads(tmp_settings_file.read_text())
        assert saved["cyclesBeforeLongBreak"] == 3

    def test_unknown_keys_are_ignored(self, store):
        store.update({"unknown_key": "surprise", "shortBreakMinutes": 7})
        s = store.get()
        assert "unknown_key" not in s
        assert s["shortBreakMinutes"] == 7

    def test_update_coerces_type(self, store):
        store.update({"focusMinutes": 30.9, "longBreakMinutes": "20"})
        assert store["focusMinutes"] == 30
        assert store["longBreakMinutes"] == 20

    @pytest.mark.parametrize("key, value, expected", [
        ("focusMinutes", 0, 1),
        ("focusMinutes", 500, 120),
        ("shortBreakMinutes", 90, 60),
        ("cyclesBeforeLongBreak", 0, 1),
        ("cyclesBeforeLongBreak", 50, 10),
    ])
    def test_out_of_range_values_are_clamped(self, store, key, value, expected):
        store.update({key: value})
        assert store[key] == expected

    def test_non_numeric_keeps_current(self, store):
        store.update({"focusMinutes": 45})
        store.update({"focusMinutes": "lots"})
        assert store["focusMinutes"] == 45

    def test_booleans(self, store):
        store.update({"enableChime": "false", "enableNotifications": 0})
        assert store["enableChime"] is False
        assert store["enableNotifications"] is False

    def test_blocked_sites_normalized(self, store):
        store.update({"blockedSites": [
            "https://www.YouTube.com/watch?v=1", "youtube.com", " news.ycombinator.com ", "", 7,
        ]})
        assert store["blockedSites"] == ["youtube.com", "news.ycombinator.com"]

    def test_blocked_sites_from_text(self, store):
        store.update({"blockedSites": "a.com\nb.com\n\na.com"})
        assert store["blockedSites"] == ["a.com", "b.com"]

    def test_partial_update_preserves_other_keys(self, store):
        store.update({"focusMinutes": 50})
        assert store["shortBreakMinutes"] == DEFAULTS["shortBreakMinutes"]

    def test_load_from_existing_file(self, tmp_settings_file):
        tmp_settings_file.write_text(json.dumps({"focusMinutes": 60}))
        s = SettingsStore(tmp_settings_file)
        s.load()
        assert s["focusMinutes"] == 60
        assert s["longBreakMinutes"] == DEFAULTS["longBreakMinutes"]

    def test_malformed_file_falls_back_to_defaults(self, tmp_settings_file):
        tmp_settings_file.write_text("not valid json{{")
        s = SettingsStore(tmp_settings_file)
        assert s.load() == DEFAULTS

    def test_write_failure_keeps_memory_value(self, tmp_path):
        s = SettingsStore(tmp_path / "settings.json")
        s.path = tmp_path  # a directory: write_text fails
        s.update({"focusMinutes": 33})
        assert s["focusMinutes"] == 33


@pytest.mark.parametrize("raw, host", [
    ("reddit.com", "reddit.com"),
    ("www.reddit.com", "reddit.com"),
    ("https://www.reddit.com/r/all", "reddit.com"),
    ("HTTP://X.com:443/", "x.com"),
    ("   ", ""),
])
def test_normalize_host(raw, host):
    assert normalize_host(raw) == host


def test_normalize_sites_dedupes_in_order():
    assert normalize_sites(["b.com", "a.com", "www.b.com"]) == ["b.com", "a.com"]


# ── API integration tests: GET /settings ─────────────────────────────────────

class TestSettingsGetEndpoint:
    async def test_get_settings_response_shape(self, client):
        r = await client.get("/settings")
        assert r.status_code == 200
        body = r.json()
        assert body["settings"] == DEFAULTS
        assert body["defaults"] == DEFAULTS

    async def test_export_includes_metadata(self, client):
        r = await client.get("/settings/export")
        assert r.status_code == 200
        body = r.json()
        assert body["version"] == "1.0.0"
        assert "exportDate" in body
        assert body["focusMinutes"] == 25


# ── API integration tests: PUT /settings ─────────────────────────────────────

class TestSettingsPutEndpoint:
    async def test_put_updates_keys(self, client):
        r = await client.put("/settings", json={"focusMinutes": 45, "enableChime": False})
        assert r.status_code == 200
        s = r.json()["settings"]
        assert s["focusMinutes"] == 45
        assert s["enableChime"] is False

    async def test_put_clamps_instead_of_rejecting(self, client):
        r = await client.put("/settings", json={"focusMinutes": 9999, "shortBreakMinutes": "x"})
        assert r.status_code == 200
        s = r.json()["settings"]
        assert s["focusMinutes"] == 120
        assert s["shortBreakMinutes"] == DEFAULTS["shortBreakMinutes"]

    async def test_put_empty_body_is_noop(self, client):
        r = await client.put("/settings", json={})
        assert r.status_code == 200
        assert r.json()["settings"] == DEFAULTS

    async def test_put_persists(self, client, cfg):
        await client.put("/settings", json={"cyclesBeforeLongBreak": 2})
        saved = json.loads(cfg.settings_path.read_text())
        assert saved["cyclesBeforeLongBreak"] == 2

    async def test_put_does_not_touch_running_countdown(self, client):
        await client.post("/timer/start")
        await client.put("/settings", json={"focusMinutes": 5})
        r = await client.get("/timer")
        assert r.json()["timeLeft"] == 1500

    async def test_get_reflects_put(self, client):
        await client.put("/settings", json={"longBreakMinutes": 30})
        r = await client.get("/settings")
        assert r.json()["settings"]["longBreakMinutes"] == 30


class TestSettingsImportEndpoint:
    async def test_import_validates_and_applies(self, client):
        r = await client.post("/settings/import", json={
            "focusMinutes": 500,
            "shortBreakMinutes": 0,
            "enableChime": False,
            "blockedSites": ["www.youtube.com", "", 12],
            "exportDate": "2024-01-01T00:00:00Z",
            "version": "1.0.0",
        })
        assert r.status_code == 200
        s = r.json()["settings"]
        assert s["focusMinutes"] == 120
        assert s["shortBreakMinutes"] == DEFAULTS["shortBreakMinutes"]
        assert s["longBreakMinutes"] == DEFAULTS["longBreakMinutes"]
        assert s["enableNotifications"] is True
        assert s["enableChime"] is False
        assert s["blockedSites"] == ["youtube.com"]

    async def test_import_without_sites_uses_defaults(self, client):
        r = await client.post("/settings/import", json={"blockedSites": "nope"})
        assert r.json()["settings"]["blockedSites"] == DEFAULTS["blockedSites"]
