import json
import logging

from papelaria.config import Settings
from papelaria.logging_config import JSONFormatter, LoggerAdapter, get_logger


class TestSettings:
    def test_defaults(self):
        config = Settings(_env_file=None)
        assert config.timezone == "America/Sao_Paulo"
        assert config.handoff_minutes == 15
        assert config.blocked_ids == frozenset()

    def test_blocked_numbers_from_env(self, monkeypatch):
        monkeypatch.setenv("BLOCKED_NUMBERS", "5531111@s.whatsapp.net, 5531222 ,")
        config = Settings(_env_file=None)
        assert config.blocked_ids == frozenset({"5531111@s.whatsapp.net", "5531222"})


class TestJSONFormatter:
    def test_includes_context(self):
        record = logging.LogRecord("papelaria.test", logging.INFO, __file__, 1, "Olá", None, None)
        record.context = {"contact_id": "5531"}

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Olá"
        assert data["level"] == "INFO"
        assert data["context"] == {"contact_id": "5531"}

    def test_adapter_merges_context(self, caplog):
        adapter = LoggerAdapter(get_logger("test"), {"contact_id": "5531"})

        with caplog.at_level(logging.INFO, logger="papelaria.test"):
            adapter.info("hello", context={"action": "greeting"})

        assert caplog.records[0].context == {"contact_id": "5531", "action": "greeting"}
