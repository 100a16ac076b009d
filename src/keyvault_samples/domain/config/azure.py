"""Azure identity and resource coordinates configuration model."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from keyvault_samples.domain.config.errors import ConfigurationError


class AzureConfig(BaseModel):
    """Configuration for the Azure tenant, identity and vault coordinates.

    Attributes:
        tenant_id: Azure AD tenant id (None = from AZURE_TENANT_ID env)
        app_id: Service principal application id used for vault management
        app_secret: Service principal secret
        subscription_id: Subscription holding the resource group
        resource_group: Resource group of the vault
        vault_location: Azure region for newly created vaults
        vault_name: Vault name
        storage_account_name: Storage account managed by the vault
        storage_account_resource_id: ARM resource id of the storage account
    """

    tenant_id: Optional[str] = None
    app_id: Optional[str] = None
    app_secret: Optional[str] = None
    subscription_id: Optional[str] = None
    resource_group: Optional[str] = None
    vault_location: Optional[str] = None
    vault_name: Optional[str] = None
    storage_account_name: Optional[str] = None
    storage_account_resource_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    def missing(self, *fields: str) -> List[str]:
        """Return the names of the given settings that are unset or empty."""
        return [name for name in fields if not getattr(self, name)]

    def require(self, *fields: str) -> "AzureConfig":
        """Return self after checking the given settings are present

        Raises:
            ConfigurationError: If any setting is missing
        """
        missing = self.missing(*fields)
        if missing:
            raise ConfigurationError(
                "Missing required Azure settings: " + ", ".join(f"azure.{name}" for name in missing)
            )
        return self
