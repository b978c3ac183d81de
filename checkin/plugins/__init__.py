"""Plugin contract and builtin plugins."""

from .base_plugin import BasePlugin, CheckOutcome, PluginError, PluginOptions, PluginResult

__all__ = [
    "BasePlugin",
    "CheckOutcome",
    "PluginError",
    "PluginOptions",
    "PluginResult",
]
