"""Management (control plane) and data (data plane) client holder."""

import logging
from typing import Any, Dict, List, Optional

from azure.keyvault.secrets.aio import SecretClient
from azure.mgmt.keyvault.aio import KeyVaultManagementClient

from keyvault_samples.domain.config import AzureConfig
from keyvault_samples.infrastructure.azure.credentials import (
    get_service_credential,
    get_user_credential,
)

logger = logging.getLogger(__name__)


def vault_url_for(vault_name: str) -> str:
    return f"https://{vault_name}.vault.azure.net/"


class KeyVaultClients:
    """Owns the Key Vault clients and their credentials.

    Use as an async context manager; every client and credential opened
    through it is closed on exit.
    """

    def __init__(self, azure: AzureConfig):
        self.azure = azure
        self._service_credential: Any = None
        self._user_credential: Any = None
        self._management_client: Optional[KeyVaultManagementClient] = None
        self._data_clients: Dict[str, SecretClient] = {}

    @property
    def management_client(self) -> KeyVaultManagementClient:
        """Management client authenticated as the configured service principal."""
        if self._management_client is None:
            if not self.azure.subscription_id:
                raise ValueError("azure.subscription_id is required for vault management")
            self._service_credential = get_service_credential(self.azure)
            self._management_client = KeyVaultManagementClient(
                self._service_credential, self.azure.subscription_id
            )
            logger.info(f"Management client initialized for subscription {self.azure.subscription_id}")
        return self._management_client

    def data_client(self, vault_url: Optional[str] = None) -> SecretClient:
        """Secret client for a vault, authenticated with the user credential.

        Args:
            vault_url: Vault URI (default: derived from azure.vault_name)
        """
        if vault_url is None:
            if not self.azure.vault_name:
                raise ValueError("azure.vault_name is required to address the vault")
            vault_url = vault_url_for(self.azure.vault_name)
        client = self._data_clients.get(vault_url)
        if client is None:
            if self._user_credential is None:
                self._user_credential = get_user_credential()
            client = SecretClient(vault_url=vault_url, credential=self._user_credential)
            self._data_clients[vault_url] = client
            logger.info(f"Data client initialized for {vault_url}")
        return client

    async def close(self) -> None:
        """Close every client, then the credentials.

        All of them are closed even if one fails; the first failure is re-raised.
        """
        resources: List[Any] = list(self._data_clients.values())
        resources.append(self._management_client)
        resources.extend((self._service_credential, self._user_credential))
        self._data_clients.clear()
        self._management_client = None
        self._service_credential = None
        self._user_credential = None

        first_error: Optional[Exception] = None
        for resource in resources:
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"Failed to close {type(resource).__name__}: {e}")
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    async def __aenter__(self) -> "KeyVaultClients":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
