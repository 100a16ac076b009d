"""Configuration errors."""


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass
