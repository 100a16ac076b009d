"""Vault creation configuration model."""

from pydantic import BaseModel, ConfigDict, Field


class VaultConfig(BaseModel):
    """Configuration for vault creation.

    Attributes:
        enable_soft_delete: Create vaults with soft delete enabled
        enable_purge_protection: Create vaults with purge protection enabled
        dns_propagation_delay: Seconds to wait after creation before refetching the vault
    """

    enable_soft_delete: bool = True
    enable_purge_protection: bool = False
    dns_propagation_delay: float = Field(10.0, ge=0.0)

    model_config = ConfigDict(extra="forbid")
