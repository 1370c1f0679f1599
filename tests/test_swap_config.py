"""Tests for adapter configuration loading and validation."""
import pytest
import yaml

from dexbridge.swap.assets import ZERO_ADDRESS, AssetDescriptor
from dexbridge.swap.codec import ScalingPolicy
from dexbridge.swap.config import (
    AdapterConfig,
    ConfigError,
    ConfigValue,
    ValidationError,
    validate_config_data,
)

LEDGER = "0x" + "11" * 20
VENUE = "0x" + "22" * 20
USDC = "0x" + "a0" * 20


def _valid_data():
    return {
        "settlement_ledger_address": LEDGER,
        "venue_address": VENUE,
        "default_deadline_seconds": 600,
        "log_level": "debug",
        "scaling_policies": {USDC.upper().replace("0X", "0x"): "six_decimal"},
    }


def test_defaults():
    config = AdapterConfig()
    assert config.settlement_ledger_address.get() == ZERO_ADDRESS
    assert config.default_deadline_seconds.get() == 3600
    assert config.log_level.get() == "info"
    assert config.scaling_policies == {}
    assert config.validate() == []


def test_from_dict_normalises_addresses():
    config = AdapterConfig.from_dict(_valid_data())
    assert config.settlement_ledger_address.get() == LEDGER
    assert config.default_deadline_seconds.get() == 600
    assert config.scaling_policies == {USDC: "six_decimal"}

    registry = config.scaling_registry()
    assert registry.policy_for(AssetDescriptor.token(1, USDC)) == ScalingPolicy.SIX_DECIMAL
    assert registry.policy_for(AssetDescriptor.token(2, VENUE)) == ScalingPolicy.STANDARD


@pytest.mark.parametrize("data, fragment", [
    ({"venue_address": "0x1234"}, "venue_address"),
    ({"default_deadline_seconds": 0}, "default_deadline_seconds"),
    ({"log_level": "loud"}, "log_level"),
    ({"scaling_policies": {USDC: "eight_decimal"}}, "eight_decimal"),
    ({"scaling_policies": {"usdc": "six_decimal"}}, "usdc"),
    ({"unknown_key": 1}, "unknown_key"),
])
def test_schema_rejects(data, fragment):
    errors = validate_config_data(data)
    assert errors
    assert any(fragment in e for e in errors)
    with pytest.raises(ValidationError):
        AdapterConfig.from_dict(data)


def test_validation_error_is_config_error():
    assert issubclass(ValidationError, ConfigError)


def test_env_overrides_file_values(monkeypatch):
    config = AdapterConfig.from_dict(_valid_data())
    monkeypatch.setenv("DEXBRIDGE_DEADLINE_SECONDS", "90")
    monkeypatch.setenv("DEXBRIDGE_VENUE", "0x" + "33" * 20)
    assert config.default_deadline_seconds.get() == 90
    assert config.venue_address.get() == "0x" + "33" * 20


def test_invalid_env_value_reported(monkeypatch):
    monkeypatch.setenv("DEXBRIDGE_DEADLINE_SECONDS", "soon")
    monkeypatch.setenv("DEXBRIDGE_FEE_BENEFICIARY", "nobody")
    errors = AdapterConfig().validate()
    assert any(e.startswith("default_deadline_seconds") for e in errors)
    assert any(e.startswith("fee_beneficiary") for e in errors)


def test_config_value_set_validates():
    value = ConfigValue(default=1, validator=lambda x: x > 0)
    value.set(5)
    assert value.get() == 5
    with pytest.raises(ValidationError):
        value.set(-1)


def test_config_value_coerces_bool(monkeypatch):
    value = ConfigValue(default=False, env_var="DEXBRIDGE_TEST_FLAG")
    monkeypatch.setenv("DEXBRIDGE_TEST_FLAG", "yes")
    assert value.get() is True


class TestFromFile:

    def test_load(self, tmp_path):
        path = tmp_path / "adapter.yaml"
        path.write_text(yaml.dump(_valid_data()))
        config = AdapterConfig.from_file(path)
        assert config.venue_address.get() == VENUE
        assert config.log_level.get() == "debug"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert AdapterConfig.from_file(path).to_dict() == AdapterConfig().to_dict()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            AdapterConfig.from_file(tmp_path / "absent.yaml")

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValidationError, match="mapping"):
            AdapterConfig.from_file(path)

    def test_yaml_round_trip(self, tmp_path):
        config = AdapterConfig.from_dict(_valid_data())
        path = tmp_path / "dump.yaml"
        path.write_text(config.to_yaml())
        assert AdapterConfig.from_file(path).to_dict() == config.to_dict()


def test_env_values_are_lowercased(monkeypatch):
    monkeypatch.setenv("DEXBRIDGE_LOG_LEVEL", "INFO")
    monkeypatch.setenv("DEXBRIDGE_SETTLEMENT_LEDGER", "0x" + "AB" * 20)
    config = AdapterConfig()
    assert config.log_level.get() == "info"
    assert config.settlement_ledger_address.get() == "0x" + "ab" * 20
    assert config.validate() == []


def test_describe_lists_env_bindings():
    described = AdapterConfig().describe()
    assert described["default_deadline_seconds"] == {
        "value": 3600,
        "env_var": "DEXBRIDGE_DEADLINE_SECONDS",
        "description": "Deadline window used when encoding without an explicit timestamp",
    }
    assert all(entry["description"] for entry in described.values())
