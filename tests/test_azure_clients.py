"""Tests for credential factories and the client holder"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from keyvault_samples.domain.config import AzureConfig
from keyvault_samples.infrastructure.azure.clients import KeyVaultClients, vault_url_for
from keyvault_samples.infrastructure.azure.credentials import get_service_credential

MODULE = "keyvault_samples.infrastructure.azure.clients"


@pytest.fixture
def azure_config():
    return AzureConfig(
        tenant_id="tenant",
        app_id="app",
        app_secret="secret",
        subscription_id="sub",
        vault_name="sample-vault",
    )


class TestCredentials:
    def test_service_credential_requires_principal(self):
        with pytest.raises(ValueError, match="azure.app_secret"):
            get_service_credential(AzureConfig(tenant_id="t", app_id="a"))

    def test_service_credential(self, azure_config):
        with patch(
            "keyvault_samples.infrastructure.azure.credentials.ClientSecretCredential"
        ) as credential_class:
            credential = get_service_credential(azure_config)

        credential_class.assert_called_once_with("tenant", "app", "secret")
        assert credential is credential_class.return_value


class TestKeyVaultClients:
    def test_vault_url_for(self):
        assert vault_url_for("v") == "https://v.vault.azure.net/"

    def test_management_client_created_once(self, azure_config):
        with patch(f"{MODULE}.get_service_credential") as get_credential, patch(
            f"{MODULE}.KeyVaultManagementClient"
        ) as client_class:
            clients = KeyVaultClients(azure_config)
            first = clients.management_client
            second = clients.management_client

        assert first is second
        client_class.assert_called_once_with(get_credential.return_value, "sub")

    def test_management_client_requires_subscription(self):
        clients = KeyVaultClients(AzureConfig(tenant_id="t", app_id="a", app_secret="s"))
        with pytest.raises(ValueError, match="subscription_id"):
            clients.management_client

    def test_data_client_defaults_to_configured_vault(self, azure_config):
        with patch(f"{MODULE}.get_user_credential") as get_credential, patch(
            f"{MODULE}.SecretClient"
        ) as client_class:
            clients = KeyVaultClients(azure_config)
            client = clients.data_client()
            again = clients.data_client("https://sample-vault.vault.azure.net/")

        assert client is again
        client_class.assert_called_once_with(
            vault_url="https://sample-vault.vault.azure.net/",
            credential=get_credential.return_value,
        )

    def test_data_client_requires_vault(self):
        with pytest.raises(ValueError, match="vault_name"):
            KeyVaultClients(AzureConfig()).data_client()

    def test_close_releases_everything(self, azure_config):
        service_credential = MagicMock(close=AsyncMock())
        user_credential = MagicMock(close=AsyncMock())
        management_client = MagicMock(close=AsyncMock())
        data_client = MagicMock(close=AsyncMock())

        async def scenario():
            async with KeyVaultClients(azure_config) as clients:
                clients.management_client
                clients.data_client()

        with patch(f"{MODULE}.get_service_credential", return_value=service_credential), patch(
            f"{MODULE}.get_user_credential", return_value=user_credential
        ), patch(f"{MODULE}.KeyVaultManagementClient", return_value=management_client), patch(
            f"{MODULE}.SecretClient", return_value=data_client
        ):
            asyncio.run(scenario())

        for resource in (service_credential, user_credential, management_client, data_client):
            resource.close.assert_awaited_once()

    def test_close_continues_after_failure(self, azure_config):
        service_credential = MagicMock(close=AsyncMock())
        user_credential = MagicMock(close=AsyncMock())
        management_client = MagicMock(close=AsyncMock())
        data_client = MagicMock(close=AsyncMock(side_effect=RuntimeError("connection reset")))

        async def scenario():
            clients = KeyVaultClients(azure_config)
            clients.management_client
            clients.data_client()
            await clients.close()

        with patch(f"{MODULE}.get_service_credential", return_value=service_credential), patch(
            f"{MODULE}.get_user_credential", return_value=user_credential
        ), patch(f"{MODULE}.KeyVaultManagementClient", return_value=management_client), patch(
            f"{MODULE}.SecretClient", return_value=data_client
        ):
            with pytest.raises(RuntimeError, match="connection reset"):
                asyncio.run(scenario())

        for resource in (service_credential, user_credential, management_client, data_client):
            resource.close.assert_awaited_once()
