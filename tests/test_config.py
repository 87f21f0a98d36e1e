"""Tests for settings loading."""

import pytest

from config import DEFAULTS, SettingsError, load_config
from config.lib.load_settings_conf import SETTINGS_PATH_ENV, load_settings_conf

def _write_settings(path, body):
    (path / 'settings.conf').write_text("[DEFAULT]\n" + body)

def test_missing_file_uses_defaults(tmp_path):
    """Test a missing settings.conf falls back to the defaults."""
    settings = load_settings_conf(str(tmp_path))

    assert settings['contract_account_id'] == DEFAULTS['contract_account_id']
    assert settings['storage_backend'] == 'memory'
    assert settings['rpc_timeout'] == 10.0
    assert settings['transfer_gas'] == 5_000_000_000_000
    assert settings['track_transfer_phase'] is False
    assert settings['admin_accounts'] == []

def test_settings_file(tmp_path):
    """Test values from settings.conf are parsed and converted."""
    _write_settings(tmp_path, (
        "contract_account_id = escrow.testnet\n"
        "registry_account_id = nft.testnet\n"
        "storage_backend = postgres\n"
        "rpc_timeout = 2.5\n"
        "track_transfer_phase = yes\n"
        "admin_accounts = ops.testnet, owner.testnet\n"
        "api_port = 9000\n"
    ))
    settings = load_settings_conf(str(tmp_path))

    assert settings['contract_account_id'] == 'escrow.testnet'
    assert settings['registry_account_id'] == 'nft.testnet'
    assert settings['storage_backend'] == 'postgres'
    assert settings['rpc_timeout'] == 2.5
    assert settings['track_transfer_phase'] is True
    assert settings['admin_accounts'] == ['ops.testnet', 'owner.testnet']
    assert settings['api_port'] == 9000

def test_settings_path_from_environment(tmp_path, monkeypatch):
    """Test the settings directory can come from the environment."""
    _write_settings(tmp_path, "contract_account_id = env.testnet\n")
    monkeypatch.setenv(SETTINGS_PATH_ENV, str(tmp_path))

    assert load_settings_conf()['contract_account_id'] == 'env.testnet'

def test_missing_required_setting(tmp_path):
    """Test an empty required setting is reported."""
    _write_settings(tmp_path, "contract_account_id =\n")

    with pytest.raises(SettingsError) as exc_info:
        load_settings_conf(str(tmp_path))
    assert "contract_account_id" in str(exc_info.value)

@pytest.mark.parametrize("body", [
    "storage_backend = redis\n",
    "rpc_timeout = 0\n",
    "transfer_gas = lots\n",
    "track_transfer_phase = maybe\n",
    "receipt_log_size = 0\n",
])
def test_invalid_settings(tmp_path, body):
    """Test invalid values are rejected."""
    _write_settings(tmp_path, body)

    with pytest.raises(SettingsError):
        load_settings_conf(str(tmp_path))

def test_load_config_overrides(tmp_path):
    """Test overrides replace file values and are validated."""
    settings = load_config(str(tmp_path), track_transfer_phase='true', admin_accounts='ops.test')
    assert settings['track_transfer_phase'] is True
    assert settings['admin_accounts'] == ['ops.test']

    with pytest.raises(SettingsError):
        load_config(str(tmp_path), storage_backend='sqlite')
