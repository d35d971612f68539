"""Tests for the on-disk card cache."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from scryfall_mcp.cache import (
    CardCache,
    JsonFileStore,
    encode_card_name,
    format_timestamp,
    parse_timestamp,
    slugify,
)


WRITTEN_AT = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestKeys:

    @pytest.mark.parametrize("name, expected", [
        ("Omnath, Locus of Rage", "omnath-locus-of-rage"),
        ("Atraxa, Praetors' Voice", "atraxa-praetors-voice"),
        ("  Sol   Ring ", "-sol-ring-"),
        ("Jötun Grunt", "jtun-grunt"),
        ("Who // What // When // Where // Why", "who--what--when--where--why"),
        ("", ""),
    ])
    def test_slugify(self, name, expected):
        assert slugify(name) == expected

    @pytest.mark.parametrize("name", [
        "Omnath, Locus of Rage",
        "K'rrik, Son of Yawgmoth",
        "Borborygmos & Fblthp",
        "\tTab\tSeparated\n",
        "already-a-slug",
    ])
    def test_slugify_is_idempotent(self, name):
        assert slugify(slugify(name)) == slugify(name)

    def test_encode_card_name_matches_uri_component_encoding(self):
        assert encode_card_name("Lightning Bolt") == "Lightning%20Bolt"
        assert encode_card_name("Atraxa, Praetors' Voice") == "Atraxa%2C%20Praetors'%20Voice"
        assert encode_card_name("Fire // Ice") == "Fire%20%2F%2F%20Ice"
        assert encode_card_name("Jötun Grunt") == "J%C3%B6tun%20Grunt"

    def test_timestamps_round_trip_with_z_suffix(self):
        text = format_timestamp(WRITTEN_AT)
        assert text == "2025-03-01T12:00:00.000Z"
        assert parse_timestamp(text) == WRITTEN_AT


class TestJsonFileStore:

    def test_missing_key_is_none(self, tmp_path):
        store = JsonFileStore(tmp_path, str)
        assert store.get("nothing") is None

    def test_put_then_get(self, tmp_path):
        store = JsonFileStore(tmp_path, str)
        store.put("key", {"a": [1, 2]})

        assert store.get("key") == {"a": [1, 2]}
        assert json.loads((tmp_path / "key.json").read_text()) == {"a": [1, 2]}

    def test_corrupt_file_is_a_miss(self, tmp_path, caplog):
        (tmp_path / "broken.json").write_text("{not json")
        store = JsonFileStore(tmp_path, str)

        assert store.get("broken") is None
        assert "Error reading cache for broken" in caplog.text

    def test_write_failure_is_swallowed(self, tmp_path, caplog):
        store = JsonFileStore(tmp_path / "does-not-exist", str)

        store.put("key", {"a": 1})

        assert store.get("key") is None
        assert "Error caching key" in caplog.text

    def test_stale_values_read_as_none(self, tmp_path):
        store = JsonFileStore(tmp_path, str, is_fresh=lambda value: value["fresh"])
        store.put("old", {"fresh": False})
        store.put("new", {"fresh": True})

        assert store.get("old") is None
        assert store.get("new") == {"fresh": True}


class TestCardCache:

    def test_ensure_dirs_is_idempotent(self, tmp_path):
        cache = CardCache(root=tmp_path / "root")

        cache.ensure_dirs()
        cache.ensure_dirs()

        assert (tmp_path / "root").is_dir()
        assert (tmp_path / "root" / "similar").is_dir()

    def test_default_root_honours_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SCRYFALL_MCP_CACHE_DIR", str(tmp_path / "from-env"))
        assert CardCache().root == tmp_path / "from-env"

    def test_card_files_are_keyed_on_encoded_name(self, cache):
        cache.put_card("Lightning Bolt", {"name": "Lightning Bolt"})

        assert (cache.root / "Lightning%20Bolt.json").exists()
        assert cache.get_card("Lightning Bolt") == {"name": "Lightning Bolt"}
        # Exact names only: no case folding
        assert cache.get_card("lightning bolt") is None

    def test_card_entries_never_expire(self, tmp_path):
        cache = CardCache(root=tmp_path, now=lambda: WRITTEN_AT + timedelta(days=5000))
        cache.ensure_dirs()
        cache.put_card("Sol Ring", {"name": "Sol Ring"})

        assert cache.get_card("Sol Ring") == {"name": "Sol Ring"}

    def test_similar_cards_envelope(self, tmp_path):
        cache = CardCache(root=tmp_path, now=lambda: WRITTEN_AT)
        cache.ensure_dirs()

        cache.put_similar_cards("Omnath, Locus of Rage", [{"name": "Lord Windgrace"}])

        envelope = json.loads((tmp_path / "similar" / "omnath-locus-of-rage.json").read_text())
        assert envelope == {
            "cards": [{"name": "Lord Windgrace"}],
            "timestamp": "2025-03-01T12:00:00.000Z",
        }

    @pytest.mark.parametrize("age_days, expected", [
        (0, [{"name": "Lord Windgrace"}]),
        (364, [{"name": "Lord Windgrace"}]),
        (366, None),
        (1000, None),
    ])
    def test_similar_cards_expire_after_a_year(self, tmp_path, age_days, expected):
        writer = CardCache(root=tmp_path, now=lambda: WRITTEN_AT)
        writer.ensure_dirs()
        writer.put_similar_cards("Omnath, Locus of Rage", [{"name": "Lord Windgrace"}])

        reader = CardCache(root=tmp_path, now=lambda: WRITTEN_AT + timedelta(days=age_days))

        assert reader.get_similar_cards("Omnath, Locus of Rage") == expected

    def test_empty_similar_list_is_a_hit(self, tmp_path):
        cache = CardCache(root=tmp_path, now=lambda: WRITTEN_AT)
        cache.ensure_dirs()
        cache.put_similar_cards("Nobody", [])

        assert cache.get_similar_cards("Nobody") == []

    def test_bad_timestamp_is_a_miss(self, cache):
        path = cache.root / "similar" / "sol-ring.json"
        path.write_text(json.dumps({"cards": [], "timestamp": "yesterday"}))

        assert cache.get_similar_cards("Sol Ring") is None

    def test_envelope_without_cards_is_a_miss(self, cache):
        path = cache.root / "similar" / "sol-ring.json"
        path.write_text(json.dumps({"timestamp": format_timestamp(datetime.now(timezone.utc))}))

        assert cache.get_similar_cards("Sol Ring") is None

    @pytest.mark.parametrize("timestamp", [12345, None, ["2024-01-01T00:00:00.000Z"]])
    def test_non_string_timestamp_is_a_miss(self, cache, timestamp, caplog):
        path = cache.root / "similar" / "sol-ring.json"
        path.write_text(json.dumps({"cards": [], "timestamp": timestamp}))

        assert cache.get_similar_cards("Sol Ring") is None
        assert "Error reading cache for Sol Ring" in caplog.text

    def test_non_object_envelope_is_a_miss(self, cache):
        path = cache.root / "similar" / "sol-ring.json"
        path.write_text(json.dumps(["Lightning Bolt"]))

        assert cache.get_similar_cards("Sol Ring") is None
