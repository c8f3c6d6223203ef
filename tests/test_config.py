"""
Tests for config.py - config.json / secrets.json / environment layering.
"""

import json

import pytest
from rj.core.config import load_config, policy_from_config, collections_from_config, load_json
from rj.core.models import Collections


def write(path, obj):
    path.write_text(json.dumps(obj), encoding="utf-8")
    return path


class TestLoadJson:

    def test_missing_file_default(self, tmp_path):
        assert load_json(tmp_path / "nope.json", {"x": 1}) == {"x": 1}

    def test_invalid_json_is_fatal(self, tmp_path):
        p = tmp_path / "bad.json"
        p.write_text("{not json", encoding="utf-8")
        with pytest.raises(SystemExit):
            load_json(p, {})


class TestLoadConfig:

    def test_file_values_and_defaults(self, tmp_path):
        cfg = load_config(write(tmp_path / "config.json", {"firebase_db_url": "https://db", "merge_radius_km": 0.2}), env={})
        assert cfg["firebase_db_url"] == "https://db"
        assert cfg["merge_radius_km"] == 0.2
        assert cfg["max_age_hours"] == 48

    def test_secrets_merged(self, tmp_path):
        cfg = load_config(
            write(tmp_path / "config.json", {"firebase_db_url": "https://db"}),
            write(tmp_path / "secrets.json", {"access_token": "tok"}),
            env={},
        )
        assert cfg["access_token"] == "tok"

    def test_env_overrides(self, tmp_path):
        cfg = load_config(
            write(tmp_path / "config.json", {"firebase_db_url": "https://file"}),
            env={"FIREBASE_DB_URL": "https://env", "FIREBASE_AUTH": "secret"},
        )
        assert cfg["firebase_db_url"] == "https://env"
        assert cfg["auth"] == "secret"

    def test_missing_db_url_is_fatal(self, tmp_path):
        with pytest.raises(SystemExit):
            load_config(tmp_path / "config.json", tmp_path / "secrets.json", env={})

    def test_bad_number_is_fatal(self, tmp_path):
        with pytest.raises(SystemExit):
            load_config(write(tmp_path / "c.json", {"firebase_db_url": "x", "max_age_hours": "soon"}), env={})

    def test_non_object_config_is_fatal(self, tmp_path):
        with pytest.raises(SystemExit):
            load_config(write(tmp_path / "c.json", [1, 2]), env={})


class TestPolicyAndCollections:

    def test_policy(self):
        p = policy_from_config({"max_age_hours": 24, "merge_radius_km": 0.05, "coord_precision": 5})
        assert p.max_age_s == 24 * 3600
        assert p.merge_radius_km == 0.05
        assert p.coord_precision == 5

    def test_policy_defaults(self):
        p = policy_from_config({})
        assert p.max_age_s == 48 * 3600
        assert p.merge_radius_km == 0.1
        assert p.coord_precision is None

    def test_negative_radius_rejected(self):
        with pytest.raises(SystemExit):
            policy_from_config({"merge_radius_km": -1})

    def test_collections(self):
        names = collections_from_config({"collections": {"live": "live_reports"}})
        assert names.live == "live_reports"
        assert names.merged == Collections().merged
