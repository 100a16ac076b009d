"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from keyvault_samples.domain.config.azure import AzureConfig
from keyvault_samples.domain.config.vault import VaultConfig
from keyvault_samples.domain.models.retry_policy import RetryPolicy


def _default_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        initial_backoff=1.0,
        max_attempts=4,
        retry_on=frozenset({429, 503}),
        abort_on=frozenset({401, 403}),
    )


class AppConfig(BaseModel):
    """Main application configuration.

    Built once at process start and passed explicitly to the services.
    Validation is performed at load time to fail fast on configuration errors.

    Attributes:
        azure: Tenant, identity and resource coordinates
        vault: Vault creation options
        retry: Retry policy applied to data-plane requests
    """

    azure: AzureConfig = Field(default_factory=AzureConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    retry: RetryPolicy = Field(default_factory=_default_retry_policy)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "azure": {
                    "tenant_id": "00000000-0000-0000-0000-000000000000",
                    "app_id": "11111111-1111-1111-1111-111111111111",
                    "app_secret": None,
                    "subscription_id": "22222222-2222-2222-2222-222222222222",
                    "resource_group": "kv-samples",
                    "vault_location": "westus",
                    "vault_name": "kv-samples-vault",
                },
                "vault": {
                    "enable_soft_delete": True,
                    "enable_purge_protection": False,
                    "dns_propagation_delay": 10,
                },
                "retry": {
                    "initial_backoff": 1,
                    "max_attempts": 4,
                    "continue_on": [],
                    "retry_on": [429, 503],
                    "abort_on": [401, 403],
                    "unclassified": "retry",
                },
            }
        },
    )
