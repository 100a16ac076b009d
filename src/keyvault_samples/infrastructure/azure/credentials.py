"""Credential factories for the management and data planes."""

import logging

from azure.identity.aio import AzureCliCredential, ClientSecretCredential

from keyvault_samples.domain.config import AzureConfig

logger = logging.getLogger(__name__)


def get_service_credential(azure: AzureConfig) -> ClientSecretCredential:
    """Service principal credential used for vault management operations.

    Args:
        azure: Azure configuration with tenant_id, app_id and app_secret set

    Raises:
        ValueError: If any of the service principal settings is missing
    """
    if not (azure.tenant_id and azure.app_id and azure.app_secret):
        raise ValueError(
            "Service principal credentials require azure.tenant_id, azure.app_id and azure.app_secret. "
            "Set AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET or provide them in config."
        )
    logger.debug(f"Using service principal {azure.app_id} in tenant {azure.tenant_id}")
    return ClientSecretCredential(azure.tenant_id, azure.app_id, azure.app_secret)


def get_user_credential() -> AzureCliCredential:
    """User-delegated credential for data-plane operations.

    Managed storage and secret operations need a user identity; the user is
    expected to be logged in with `az login` and to hold the required roles.
    """
    return AzureCliCredential()
