"""Exception types raised by collectors and the CLI."""


class PluginError(Exception):
    """Base class for every error that should end a collector run."""


class ConfigError(PluginError):
    """Configuration is missing or invalid."""


class FetchError(PluginError):
    """Remote endpoint could not be reached or returned an unusable response."""


class ParseError(PluginError):
    """Fetched payload is missing a field the scraper requires."""


class OutputError(PluginError):
    """Plugin envelope could not be serialized."""


class CollectorError(PluginError):
    """Unexpected failure inside a collector."""
