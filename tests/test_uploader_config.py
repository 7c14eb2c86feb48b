"""Tests for uploader configuration module."""

import json

from uploader.config import Config


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.itr-uploader' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()

    assert config.data['gateway_port'] == 8000
    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3
    assert config.data['retry_backoff_multiplier'] == 2
    assert config.get_user_id() == 'default-user'


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file."""
    config_path = tmp_path / '.itr-uploader' / 'config.json'
    config_path.parent.mkdir(parents=True)

    with open(config_path, 'w') as f:
        json.dump({'gateway_host': 'gateway.internal', 'gateway_port': 9000, 'user_id': 'alice'}, f)

    config = Config(config_path)

    assert config.get_base_url() == 'http://gateway.internal:9000'
    assert config.get_user_id() == 'alice'
    assert config.data['timeout'] == 30


def test_invalid_json_uses_defaults_and_keeps_backup(tmp_path):
    config_path = tmp_path / '.itr-uploader' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text('{broken')

    config = Config(config_path)

    assert config.data['max_retries'] == 3
    assert config_path.with_suffix('.json.bak').read_text() == '{broken'


def test_set_user_id_persists(temp_config):
    temp_config.set_user_id('bob')

    with open(temp_config.config_path, 'r') as f:
        data = json.load(f)
    assert data['user_id'] == 'bob'
    assert Config(temp_config.config_path).get_user_id() == 'bob'


def test_retry_config(temp_config):
    assert temp_config.get_retry_config() == {'max_retries': 3, 'retry_backoff_multiplier': 2}
