import pytest
from pydantic import ValidationError

from relay_app.config import Settings
from relay_app.dependencies import get_queue_handle


class TestSettings:
    def test_defaults_target_local_development(self, monkeypatch):
        monkeypatch.delenv("QUEUE_CONNECTION_STRING", raising=False)
        monkeypatch.delenv("AzureWebJobsStorage", raising=False)

        settings = Settings(_env_file=None)

        assert settings.queue_connection_string == "redis://localhost:6379/0"
        assert settings.queue_name == "practice-queue"
        assert settings.strict_envelopes is False

    def test_connection_string_from_environment(self, monkeypatch):
        monkeypatch.setenv("QUEUE_CONNECTION_STRING", "redis://queue-host:6379/2")

        settings = Settings(_env_file=None)

        assert settings.queue_connection_string == "redis://queue-host:6379/2"

    def test_connection_string_legacy_variable(self, monkeypatch):
        monkeypatch.delenv("QUEUE_CONNECTION_STRING", raising=False)
        monkeypatch.setenv("AzureWebJobsStorage", "redis://legacy:6379/0")

        settings = Settings(_env_file=None)

        assert settings.queue_connection_string == "redis://legacy:6379/0"


class TestQueueHandle:
    def test_handle_is_built_once_and_frozen(self):
        handle = get_queue_handle()

        assert get_queue_handle() is handle
        with pytest.raises(ValidationError):
            handle.queue_name = "other"
