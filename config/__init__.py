"""Configuration module for loading and managing application settings"""
from typing import Dict, Any, Optional

from .lib.load_settings_conf import (
    load_settings_conf, validate_settings, SettingsError, DEFAULTS
)

__all__ = ['settings_conf', 'load_config', 'validate_settings', 'SettingsError', 'DEFAULTS']

def load_config(settings_path: Optional[str] = None, **overrides: Any) -> Dict[str, Any]:
    """Load configuration from file.

    Args:
        settings_path: Optional directory containing settings.conf. If not
                      provided, $ESCROW_SETTINGS_PATH or the current directory is used.
        **overrides: Settings that replace values from the file

    Returns:
        Dict of validated settings
    """
    settings = load_settings_conf(settings_path)
    if overrides:
        merged = dict(settings)
        merged.update(overrides)
        settings = validate_settings(merged)
    return settings

try:
    settings_conf: Dict[str, Any] = load_settings_conf()

except SettingsError as e:
    # Re-raise the error but provide more context
    raise SettingsError(
        f"Configuration Error\n"
        "=================\n\n"
        f"{str(e)}\n\n"
        "Please ensure settings.conf is properly configured.\n"
        "See examples/settings.conf.example for the available settings."
    )
