"""Tests for environment-based configuration."""
import logging

import pytest

from ado_core.config import load_settings, parse_blocked_types, parse_max_file_size
from ado_core.errors import ConfigurationError

VALID_ENV = {
    "AZURE_DEVOPS_URL": "https://dev.azure.com/contoso/",
    "AZURE_DEVOPS_PAT": "p" * 52,
    "AZURE_DEVOPS_PROJECT": "Contoso",
}


def env(**overrides) -> dict:
    values = {**VALID_ENV, **overrides}
    return {key: value for key, value in values.items() if value is not None}


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings(env())

        assert settings.azure_devops_url == "https://dev.azure.com/contoso"
        assert settings.gdpr_blocked_work_item_types == ["Bug"]
        assert settings.max_file_size_bytes == 1024 * 1024
        assert settings.api_version == "7.1"
        assert settings.request_timeout_seconds == 30.0

    def test_pat_not_in_repr(self):
        settings = load_settings(env())
        assert "p" * 52 not in repr(settings)

    @pytest.mark.parametrize("name", ["AZURE_DEVOPS_URL", "AZURE_DEVOPS_PAT", "AZURE_DEVOPS_PROJECT"])
    def test_missing_required(self, name):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(env(**{name: None}))
        assert exc_info.value.missing_config == name

    def test_url_must_be_http(self):
        with pytest.raises(ConfigurationError, match="http"):
            load_settings(env(AZURE_DEVOPS_URL="dev.azure.com/contoso"))

    def test_short_pat_rejected(self):
        with pytest.raises(ConfigurationError, match="too short"):
            load_settings(env(AZURE_DEVOPS_PAT="short"))

    def test_custom_blocked_types_and_size(self):
        settings = load_settings(env(GDPR_BLOCKED_WORK_ITEM_TYPES="Bug, Incident,,", MAX_FILE_SIZE_MB="2.5"))

        assert settings.gdpr_blocked_work_item_types == ["Bug", "Incident"]
        assert settings.max_file_size_bytes == int(2.5 * 1024 * 1024)

    def test_empty_blocked_types_falls_back_to_default(self):
        settings = load_settings(env(GDPR_BLOCKED_WORK_ITEM_TYPES=""))

        assert settings.gdpr_blocked_work_item_types == ["Bug"]

    def test_empty_block_set_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ado-core.config"):
            settings = load_settings(env(GDPR_BLOCKED_WORK_ITEM_TYPES=" , "))

        assert settings.gdpr_blocked_work_item_types == []
        assert "No GDPR blocked work item types configured" in caplog.text

    def test_invalid_timeout(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(env(AZURE_DEVOPS_TIMEOUT_SECONDS="soon"))
        assert exc_info.value.missing_config == "AZURE_DEVOPS_TIMEOUT_SECONDS"


class TestParsers:

    def test_blocked_types(self):
        assert parse_blocked_types(" Bug ,Issue") == ["Bug", "Issue"]
        assert parse_blocked_types("") == []

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "nan"])
    def test_invalid_file_size(self, value):
        with pytest.raises(ConfigurationError):
            parse_max_file_size(value)

    def test_file_size_in_bytes(self):
        assert parse_max_file_size("1") == 1048576
