"""Secret operations (data plane), each request run under the retry policy."""

import asyncio
import logging
from http import HTTPStatus
from typing import Any, FrozenSet, List, Optional

from keyvault_samples.domain.models.retry_policy import RetryPolicy
from keyvault_samples.infrastructure.retry import retry_http_request

logger = logging.getLogger(__name__)

NOT_FOUND = int(HTTPStatus.NOT_FOUND)
CONFLICT = int(HTTPStatus.CONFLICT)


class SecretOperationError(RuntimeError):
    """Raised when a request that must complete ran out of attempts."""

    def __init__(self, operation_name: str, attempts: int):
        self.operation_name = operation_name
        self.attempts = attempts
        super().__init__(f"{operation_name} did not complete within {attempts} attempts")


def _policy_with(
    policy: RetryPolicy,
    *,
    continue_on: FrozenSet[int] = frozenset(),
    retry_on: FrozenSet[int] = frozenset(),
) -> RetryPolicy:
    """Derive a policy that adds the given codes, removing them from the other sets."""
    moved = continue_on | retry_on
    abort_on = policy.abort_on - moved if policy.abort_on is not None else None
    return policy.with_codes(
        continue_on=(policy.continue_on - moved) | continue_on,
        retry_on=(policy.retry_on - moved) | retry_on,
        abort_on=abort_on,
    )


class SecretService:
    """Wraps a SecretClient (aio); every request goes through retry_http_request."""

    def __init__(
        self,
        secret_client: Any,
        retry_policy: Optional[RetryPolicy] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
        sleep=None,
    ):
        """Initialize secret service

        Args:
            secret_client: azure.keyvault.secrets.aio.SecretClient
            retry_policy: Policy for ordinary requests (None = single attempt)
            cancel_event: Event that stops pending retries when set
            sleep: Async sleep used for backoff (defaults to asyncio.sleep)
        """
        self.client = secret_client
        self.retry_policy = retry_policy or RetryPolicy.no_retry()
        self._cancel_event = cancel_event
        self._sleep = sleep

    async def _run(self, operation, operation_name: str, policy: RetryPolicy):
        return await retry_http_request(
            operation,
            operation_name,
            policy,
            sleep=self._sleep,
            cancel_event=self._cancel_event,
        )

    async def _run_to_completion(self, operation, operation_name: str, policy: RetryPolicy):
        """Like _run, but a request that never completed raises SecretOperationError.

        The response is boxed so that operations returning None on success
        (purge) are told apart from an exhausted retry budget.
        """

        async def _boxed():
            return (await operation(),)

        result = await self._run(_boxed, operation_name, policy)
        if result is None:
            raise SecretOperationError(operation_name, policy.max_attempts)
        return result[0]

    async def set_secret(self, name: str, value: str):
        """Create or update a secret; returns the KeyVaultSecret (None if retries ran out)."""
        return await self._run(
            lambda: self.client.set_secret(name, value),
            f"set secret '{name}'",
            self.retry_policy,
        )

    async def get_secret(self, name: str):
        """Return the secret, or None if it does not exist."""
        policy = _policy_with(self.retry_policy, continue_on=frozenset({NOT_FOUND}))
        return await self._run(
            lambda: self.client.get_secret(name),
            f"get secret '{name}'",
            policy,
        )

    async def list_secret_names(self) -> List[str]:
        async def _list() -> List[str]:
            return [props.name async for props in self.client.list_properties_of_secrets()]

        names = await self._run(_list, "list secrets", self.retry_policy)
        return names or []

    async def delete_secret(self, name: str, purge: bool = False):
        """Delete a secret and wait until the deleted secret is visible.

        Args:
            name: Secret name
            purge: Permanently purge the deleted secret afterwards

        Returns:
            DeletedSecret, or None if it never became visible within the retry budget

        Raises:
            SecretOperationError: The delete or the purge ran out of attempts
        """
        await self._run_to_completion(
            lambda: self.client.delete_secret(name),
            f"delete secret '{name}'",
            self.retry_policy,
        )

        # The deleted secret shows up in the soft-delete store with a delay
        deleted = await self._run(
            lambda: self.client.get_deleted_secret(name),
            f"get deleted secret '{name}'",
            _policy_with(self.retry_policy, retry_on=frozenset({NOT_FOUND})),
        )

        if purge:
            # 409 while the deletion is still being processed
            await self._run_to_completion(
                lambda: self.client.purge_deleted_secret(name),
                f"purge deleted secret '{name}'",
                _policy_with(self.retry_policy, retry_on=frozenset({CONFLICT})),
            )
            logger.info(f"Purged secret '{name}'")

        return deleted

    async def recover_deleted_secret(self, name: str):
        """Recover a soft-deleted secret and wait until it is readable again."""
        await self._run(
            lambda: self.client.recover_deleted_secret(name),
            f"recover deleted secret '{name}'",
            _policy_with(self.retry_policy, retry_on=frozenset({CONFLICT})),
        )
        return await self._run(
            lambda: self.client.get_secret(name),
            f"get recovered secret '{name}'",
            _policy_with(self.retry_policy, retry_on=frozenset({NOT_FOUND})),
        )
