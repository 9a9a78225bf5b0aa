"""Tests for typed key-value settings."""

import pytest

from app.models.setting import SettingModel
from app.services import settings_store
from app.services.settings_store import DEFAULT_SETTINGS, decode_value, encode_value


class TestEncodeDecode:
    def test_native_types(self):
        assert encode_value(True) == ("bool", "true")
        assert encode_value(False) == ("bool", "false")
        assert encode_value(22) == ("number", "22")
        assert encode_value(22.5) == ("number", "22.5")
        assert encode_value(24.0) == ("number", "24")
        assert encode_value("Aquaponia") == ("string", "Aquaponia")
        assert encode_value(None) == ("string", "")

    def test_strings_keep_lexical_meaning(self):
        assert encode_value("true") == ("bool", "true")
        assert encode_value("FALSE") == ("bool", "false")
        assert encode_value("18") == ("number", "18")
        assert encode_value("-2.5") == ("number", "-2.5")
        assert encode_value("06:00") == ("string", "06:00")
        assert encode_value("") == ("string", "")

    def test_overflowing_number_string_kept_as_text(self):
        assert encode_value("1e999") == ("string", "1e999")
        assert decode_value(None, "1e999") == "1e999"

    def test_rejects_unsupported_types(self):
        with pytest.raises(TypeError):
            encode_value(["a"])
        with pytest.raises(ValueError):
            encode_value(float("nan"))

    def test_decode_by_tag(self):
        assert decode_value("bool", "true") is True
        assert decode_value("number", "1") == 1
        assert isinstance(decode_value("number", "1"), int)
        assert decode_value("number", "1.5") == 1.5
        assert decode_value("string", "1") == "1"

    def test_untagged_rows_coerced_lexically(self):
        assert decode_value(None, "true") is True
        assert decode_value(None, "30") == 30
        assert decode_value(None, "abc") == "abc"
        assert decode_value(None, None) == ""


class TestGetSetAll:
    def test_round_trip(self, db):
        values = {
            "systemName": "Tank A",
            "pumpAuto": False,
            "tempCriticalMax": 31.5,
            "dataRetention": 14,
            "pumpOnTime": "07:30",
        }
        settings_store.set_all(db, values)
        assert settings_store.get_all(db) == values

    def test_string_true_reads_as_bool(self, db):
        settings_store.set_all(db, {"emailAlerts": True})
        settings_store.set_all(db, {"emailAlerts": "true"})
        assert settings_store.get_all(db)["emailAlerts"] is True

    def test_upsert_keeps_single_row(self, db):
        settings_store.set_all(db, {"heaterOnTemp": 22})
        settings_store.set_all(db, {"heaterOnTemp": 23})
        assert db.query(SettingModel).filter_by(key="heaterOnTemp").count() == 1
        assert settings_store.get_value(db, "heaterOnTemp") == 23

    def test_failed_batch_changes_nothing(self, db):
        settings_store.set_all(db, {"a": 1, "b": 2})

        with pytest.raises(TypeError):
            settings_store.set_all(db, {"a": 100, "b": object()})

        assert settings_store.get_all(db) == {"a": 1, "b": 2}

    def test_failed_batch_does_not_create_keys(self, db):
        with pytest.raises(TypeError):
            settings_store.set_all(db, {"fresh": "x", "broken": {"nested": 1}})
        assert settings_store.get_all(db) == {}

    def test_get_value_default(self, db):
        assert settings_store.get_value(db, "missing", 7) == 7


class TestSeedDefaults:
    def test_seeds_all_defaults(self, db):
        assert settings_store.seed_defaults(db) == len(DEFAULT_SETTINGS)
        assert settings_store.get_all(db) == DEFAULT_SETTINGS

    def test_does_not_overwrite_existing(self, db):
        settings_store.set_all(db, {"systemName": "Estufa"})
        settings_store.seed_defaults(db)
        assert settings_store.get_value(db, "systemName") == "Estufa"
        assert settings_store.seed_defaults(db) == 0
