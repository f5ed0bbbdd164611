"""Runtime settings for copydesk."""

from copydesk_core.config.settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
