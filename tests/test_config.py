"""Engine configuration: environments, files, environment variables and logging."""

import json
import logging

import pytest
import yaml
from fastcore.xml import Input, Span

from viewbind import (
    AttributeConfig, BindingEngine, EngineConfig, Environment, ViewTree,
    configure_from_dict, configure_logging, get_config, set_config,
)
from viewbind import config as config_module


@pytest.fixture
def restore_global_config():
    previous = config_module._current_config
    yield
    set_config(previous)


class TestEngineConfig:

    def test_defaults(self):
        config = EngineConfig()
        assert config.environment is Environment.DEVELOPMENT
        assert config.debounce_delay == 0.05
        assert config.sync_on_start
        assert not config.propagate_change_events
        assert config.auto_id_prefix == "_data_bind_no_"
        assert config.attributes.bind == "data-bind"

    def test_for_environment(self):
        testing = EngineConfig.for_environment(Environment.TESTING)
        assert testing.debounce_delay == 0.01
        assert testing.logging.level == "WARNING"

        development = EngineConfig.for_environment(Environment.DEVELOPMENT)
        assert development.debug
        assert development.logging.level == "DEBUG"

    def test_from_dict_updates_nested_sections(self):
        config = EngineConfig.from_dict({
            "environment": "production",
            "debounce_delay": 0.2,
            "attributes": {"bind": "data-sync", "unknown": "ignored"},
            "logging": {"level": "ERROR"},
        })
        assert config.environment is Environment.PRODUCTION
        assert config.debounce_delay == 0.2
        assert config.attributes.bind == "data-sync"
        assert not hasattr(config.attributes, "unknown")
        assert config.logging.level == "ERROR"

    def test_to_dict_round_trips_environment(self):
        data = EngineConfig.for_environment(Environment.TESTING).to_dict()
        assert data["environment"] == "testing"
        assert data["attributes"]["check_field"] == "data-check-field"
        assert EngineConfig.from_dict(data).environment is Environment.TESTING

    def test_from_json_and_yaml_files(self, tmp_path):
        json_path = tmp_path / "viewbind.json"
        json_path.write_text(json.dumps({"propagate_change_events": True}))
        assert EngineConfig.from_file(json_path).propagate_change_events

        yaml_path = tmp_path / "viewbind.yaml"
        yaml_path.write_text(yaml.safe_dump({"environment": "testing", "sync_on_start": False}))
        config = EngineConfig.from_file(yaml_path)
        assert config.environment is Environment.TESTING
        assert not config.sync_on_start

    def test_from_file_errors(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            EngineConfig.from_file(tmp_path / "missing.yaml")
        ini_path = tmp_path / "viewbind.ini"
        ini_path.write_text("[viewbind]")
        with pytest.raises(ValueError):
            EngineConfig.from_file(ini_path)

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("VIEWBIND_ENV", "production")
        monkeypatch.setenv("VIEWBIND_DEBOUNCE_DELAY", "0.3")
        monkeypatch.setenv("VIEWBIND_PROPAGATE_CHANGE_EVENTS", "TRUE")
        monkeypatch.setenv("VIEWBIND_LOG_LEVEL", "debug")
        config = EngineConfig.from_environment()
        assert config.environment is Environment.PRODUCTION
        assert config.debounce_delay == 0.3
        assert config.propagate_change_events
        assert config.logging.level == "DEBUG"


class TestGlobalConfig:

    def test_engine_uses_global_config(self, restore_global_config):
        configure_from_dict({"environment": "testing", "sync_on_start": False})
        engine = BindingEngine(ViewTree.from_ft(Span(data_bind="x")))
        assert engine.config is get_config()
        assert not engine.config.sync_on_start

    def test_custom_vocabulary(self):
        config = EngineConfig.for_environment(Environment.TESTING)
        config.attributes = AttributeConfig(bind="data-sync")
        tree = ViewTree.from_ft(
            Input(type="text", id="a", data_sync="user"),
            Span(id="b", data_sync="user"),
            Span(id="ignored", data_bind="user"),
        )
        BindingEngine(tree, config=config).start()
        tree.by_id("a").type_text("ada")
        assert tree.by_id("b").text == "ada"
        assert tree.by_id("ignored").text == ""


class TestLogging:

    def test_configure_logging_replaces_handlers(self, tmp_path):
        log_file = tmp_path / "viewbind.log"
        config = EngineConfig.for_environment(Environment.TESTING).logging
        config.file_path = str(log_file)

        logger = configure_logging(config)
        configure_logging(config)
        try:
            assert logger.name == "viewbind"
            assert len(logger.handlers) == 1
            assert logger.level == logging.WARNING
            logging.getLogger("viewbind.engine").warning("engine warning")
            logger.handlers[0].flush()
            assert "engine warning" in log_file.read_text()
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)

    def test_debug_flag_forces_debug_level(self, restore_global_config):
        config = EngineConfig.for_environment(Environment.TESTING)
        config.debug = True
        set_config(config)

        logger = configure_logging()
        try:
            assert config.logging.level == "WARNING"
            assert logger.level == logging.DEBUG

            configure_logging(config.logging)
            assert logger.level == logging.WARNING
            configure_logging(config.logging, debug=True)
            assert logger.level == logging.DEBUG
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)
