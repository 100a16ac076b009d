"""Vault lifecycle service (control plane): fetch, create and refetch a vault."""

import asyncio
import logging
import uuid
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Optional

from azure.core.exceptions import HttpResponseError
from azure.mgmt.keyvault.models import (
    CreateMode,
    Sku,
    SkuFamily,
    SkuName,
    Vault,
    VaultCreateOrUpdateParameters,
    VaultProperties,
)

from keyvault_samples.domain.config import AzureConfig, VaultConfig

logger = logging.getLogger(__name__)


def is_expected_status(error: BaseException, expected_status: int) -> bool:
    """Check that an error is an ARM HTTP error with the expected status code."""
    if not isinstance(error, HttpResponseError):
        logger.error(f"Unexpected exception encountered running sample: {error}")
        return False
    if error.status_code != expected_status:
        logger.error(
            f"Encountered unexpected ARM exception; expected status code: {int(expected_status)}, "
            f"actual: {error.status_code}"
        )
        return False
    return True


class VaultService:
    """Creates the sample vault if needed and returns its descriptor."""

    def __init__(
        self,
        management_client: Any,
        azure_config: AzureConfig,
        vault_config: Optional[VaultConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize vault service

        Args:
            management_client: KeyVaultManagementClient (aio)
            azure_config: Tenant and vault coordinates
            vault_config: Vault creation options
            sleep: Async sleep used while waiting for DNS propagation
        """
        self.management_client = management_client
        self.azure_config = azure_config
        self.vault_config = vault_config or VaultConfig()
        self._sleep = sleep

    def create_vault_parameters(
        self,
        vault_location: str,
        enable_soft_delete: bool,
        enable_purge_protection: bool,
    ) -> VaultCreateOrUpdateParameters:
        """Build create-or-update parameters for a standard vault in the configured tenant

        Raises:
            ValueError: If the configured tenant id is missing or not a GUID
        """
        if not self.azure_config.tenant_id:
            raise ValueError("azure.tenant_id is required to create a vault")
        tenant_id = str(uuid.UUID(self.azure_config.tenant_id))

        properties = VaultProperties(
            tenant_id=tenant_id,
            sku=Sku(family=SkuFamily.A, name=SkuName.STANDARD),
            access_policies=[],
            enabled_for_deployment=False,
            enabled_for_disk_encryption=False,
            enabled_for_template_deployment=False,
            # The service rejects an explicit False for these flags; leave them unset instead
            enable_soft_delete=True if enable_soft_delete else None,
            enable_purge_protection=True if enable_purge_protection else None,
            create_mode=CreateMode.DEFAULT,
        )

        # Managed storage access requires a user identity; the user is expected
        # to have been granted the required roles beforehand.
        return VaultCreateOrUpdateParameters(location=vault_location, properties=properties)

    async def create_or_retrieve_vault(
        self,
        resource_group: str,
        vault_name: str,
        enable_soft_delete: Optional[bool] = None,
        enable_purge_protection: Optional[bool] = None,
    ) -> Vault:
        """Return the vault, creating it first if it does not exist

        Args:
            resource_group: Resource group name
            vault_name: Vault name
            enable_soft_delete: Override of vault.enable_soft_delete
            enable_purge_protection: Override of vault.enable_purge_protection

        Returns:
            Vault descriptor

        Raises:
            HttpResponseError: If the lookup fails with anything but 404, or creation fails
        """
        if enable_soft_delete is None:
            enable_soft_delete = self.vault_config.enable_soft_delete
        if enable_purge_protection is None:
            enable_purge_protection = self.vault_config.enable_purge_protection

        vault = None
        try:
            logger.info(f"Checking the existence of vault {vault_name}...")
            vault = await self.management_client.vaults.get(resource_group, vault_name)
            logger.info(f"Found vault {vault_name}")
        except HttpResponseError as e:
            if not is_expected_status(e, HTTPStatus.NOT_FOUND):
                raise

        if vault is not None:
            return vault

        if not self.azure_config.vault_location:
            raise ValueError("azure.vault_location is required to create a vault")
        parameters = self.create_vault_parameters(
            self.azure_config.vault_location, enable_soft_delete, enable_purge_protection
        )

        try:
            logger.info(f"Vault {vault_name} does not exist; creating...")
            poller = await self.management_client.vaults.begin_create_or_update(
                resource_group, vault_name, parameters
            )
            vault = await poller.result()
            logger.info(f"Created vault {vault_name}")

            delay = self.vault_config.dns_propagation_delay
            logger.info(f"Waiting {delay:g}s for DNS propagation...")
            await self._sleep(delay)

            logger.info(f"Retrieving newly created vault {vault_name}...")
            vault = await self.management_client.vaults.get(resource_group, vault_name)
        except Exception as e:
            logger.error(f"Unexpected exception encountered updating or retrieving the vault: {e}")
            raise

        return vault
