"""Environment configuration."""

import pytest

from sinag_admin.config import DEFAULT_PACKAGE_ID, ProtocolConfig, UploadConfig
from sinag_admin.errors import ConfigurationError


def test_defaults(monkeypatch):
    monkeypatch.delenv("SINAG_PACKAGE_ID", raising=False)
    monkeypatch.delenv("EVENT_QUERY_MAX_PAGES", raising=False)

    config = ProtocolConfig.from_env()

    assert config.package_id == DEFAULT_PACKAGE_ID
    assert config.event_query_max_pages == 1
    assert config.package_ids[-1] == DEFAULT_PACKAGE_ID
    assert config.function_target("toggle_pause") == f"{DEFAULT_PACKAGE_ID}::campaign::toggle_pause"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SINAG_PACKAGE_ID", "0xnew")
    monkeypatch.setenv("SINAG_LEGACY_PACKAGE_ID", "0xold")
    monkeypatch.setenv("EVENT_QUERY_MAX_PAGES", "5")

    config = ProtocolConfig.from_env()

    assert config.package_ids == ("0xold", "0xnew")
    assert config.event_type("CampaignCreated", "0xold") == "0xold::campaign::CampaignCreated"
    assert config.admin_cap_type == "0xnew::campaign::AdminCap"
    assert config.event_query_max_pages == 5


def test_same_legacy_and_current_package_queried_once():
    config = ProtocolConfig(package_id="0x1", legacy_package_id="0x1")

    assert config.package_ids == ("0x1",)


def test_invalid_settings_raise_configuration_error(monkeypatch):
    monkeypatch.setenv("RPC_TIMEOUT", "soon")
    with pytest.raises(ConfigurationError):
        ProtocolConfig.from_env()

    with pytest.raises(ConfigurationError):
        ProtocolConfig(event_query_max_pages=0)

    with pytest.raises(ConfigurationError):
        ProtocolConfig().coin_type_for("ETH")


def test_upload_config(monkeypatch):
    monkeypatch.delenv("PINATA_JWT", raising=False)
    assert UploadConfig.from_env().configured is False

    monkeypatch.setenv("PINATA_JWT", "jwt")
    assert UploadConfig.from_env().configured is True
