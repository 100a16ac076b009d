"""Configuration models with Pydantic validation."""

from keyvault_samples.domain.config.app import AppConfig
from keyvault_samples.domain.config.azure import AzureConfig
from keyvault_samples.domain.config.errors import ConfigurationError
from keyvault_samples.domain.config.vault import VaultConfig

__all__ = [
    "AppConfig",
    "AzureConfig",
    "ConfigurationError",
    "VaultConfig",
]
