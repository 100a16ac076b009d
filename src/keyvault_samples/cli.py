"""CLI interface for the Key Vault samples"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import click

from keyvault_samples.application.secret_service import SecretOperationError, SecretService
from keyvault_samples.application.vault_service import VaultService
from keyvault_samples.domain.config import AppConfig
from keyvault_samples.infrastructure.azure.clients import KeyVaultClients
from keyvault_samples.infrastructure.config.config_manager import ConfigManager, ConfigurationError
from keyvault_samples.infrastructure.retry import RetryCancelledError, RetryPolicyViolation

logger = logging.getLogger(__name__)

VAULT_SETTINGS = ("tenant_id", "app_id", "app_secret", "subscription_id", "resource_group", "vault_name")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    # The Azure SDK logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _load_config(ctx: click.Context) -> ConfigManager:
    try:
        return ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=ctx.obj.get("verbose", False), exc=e)


def _run(ctx: click.Context, coro) -> None:
    """Run an async workflow, turning failures into ClickException"""
    verbose = ctx.obj.get("verbose", False)
    try:
        asyncio.run(coro)
    except click.ClickException:
        raise
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)
    except (RetryPolicyViolation, RetryCancelledError) as e:
        _die(f"Request stopped by retry policy: {e}", verbose=verbose, exc=e)
    except SecretOperationError as e:
        _die(f"Request failed: {e}", verbose=verbose, exc=e)
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)


async def ensure_vault(
    config: AppConfig,
    enable_soft_delete: Optional[bool] = None,
    enable_purge_protection: Optional[bool] = None,
):
    """Create the configured vault if needed and return its descriptor"""
    async with KeyVaultClients(config.azure) as clients:
        service = VaultService(clients.management_client, config.azure, config.vault)
        return await service.create_or_retrieve_vault(
            config.azure.resource_group,
            config.azure.vault_name,
            enable_soft_delete=enable_soft_delete,
            enable_purge_protection=enable_purge_protection,
        )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .keyvault-sample.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """Azure Key Vault control-plane and data-plane samples"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.group()
def vault():
    """Vault lifecycle (control plane)."""


@vault.command("ensure")
@click.option(
    "--soft-delete/--no-soft-delete",
    default=None,
    help="Create the vault with soft delete enabled. Overrides config.",
)
@click.option(
    "--purge-protection/--no-purge-protection",
    default=None,
    help="Create the vault with purge protection enabled. Overrides config.",
)
@click.pass_context
def vault_ensure(ctx, soft_delete: Optional[bool], purge_protection: Optional[bool]):
    """Create the configured vault if it does not exist."""
    config_manager = _load_config(ctx)

    async def _workflow():
        required = VAULT_SETTINGS + ("vault_location",)
        config_manager.require_azure_settings(*required)
        result = await ensure_vault(config_manager.config, soft_delete, purge_protection)
        click.echo(f"Vault: {result.name}")
        click.echo(f"Id: {result.id}")
        if result.properties is not None:
            click.echo(f"URI: {result.properties.vault_uri}")

    _run(ctx, _workflow())


@cli.group()
def secret():
    """Secret operations (data plane)."""


def _secret_command(ctx: click.Context, action) -> None:
    """Run an action against a SecretService for the configured vault"""
    config_manager = _load_config(ctx)

    async def _workflow():
        azure = config_manager.require_azure_settings("vault_name")
        async with KeyVaultClients(azure) as clients:
            service = SecretService(clients.data_client(), config_manager.get_retry_policy())
            await action(service)

    _run(ctx, _workflow())


@secret.command("set")
@click.argument("name")
@click.argument("value")
@click.pass_context
def secret_set(ctx, name: str, value: str):
    """Create or update secret NAME with VALUE."""

    async def _action(service: SecretService):
        result = await service.set_secret(name, value)
        if result is None:
            raise click.ClickException(f"Secret '{name}' was not set: retries exhausted")
        click.echo(f"Set secret '{name}' (version {result.properties.version})")

    _secret_command(ctx, _action)


@secret.command("get")
@click.argument("name")
@click.pass_context
def secret_get(ctx, name: str):
    """Print the value of secret NAME."""

    async def _action(service: SecretService):
        result = await service.get_secret(name)
        if result is None:
            raise click.ClickException(f"Secret '{name}' not found")
        click.echo(result.value)

    _secret_command(ctx, _action)


@secret.command("list")
@click.pass_context
def secret_list(ctx):
    """List secret names in the vault."""

    async def _action(service: SecretService):
        names = await service.list_secret_names()
        if not names:
            click.echo("No secrets found.")
        for name in names:
            click.echo(name)

    _secret_command(ctx, _action)


@secret.command("delete")
@click.argument("name")
@click.option("--purge", is_flag=True, help="Purge the secret after deleting it")
@click.pass_context
def secret_delete(ctx, name: str, purge: bool):
    """Delete secret NAME (soft delete unless --purge)."""

    async def _action(service: SecretService):
        deleted = await service.delete_secret(name, purge=purge)
        if deleted is None:
            click.echo(f"Deleted secret '{name}' (deletion not yet visible)")
        else:
            click.echo(f"Deleted secret '{name}'")
        if purge:
            click.echo(f"Purged secret '{name}'")

    _secret_command(ctx, _action)


@secret.command("recover")
@click.argument("name")
@click.pass_context
def secret_recover(ctx, name: str):
    """Recover soft-deleted secret NAME."""

    async def _action(service: SecretService):
        recovered = await service.recover_deleted_secret(name)
        if recovered is None:
            click.echo(f"Recovery of '{name}' requested; secret not readable yet")
        else:
            click.echo(f"Recovered secret '{name}'")

    _secret_command(ctx, _action)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
