"""Tests for RetryPolicy validation and classification"""

import pytest
from pydantic import ValidationError

from keyvault_samples.domain.models.retry_policy import (
    RetryDecision,
    RetryPolicy,
    UnclassifiedAction,
)


class TestRetryPolicyValidation:
    """Tests for RetryPolicy construction"""

    def test_valid_policy(self):
        policy = RetryPolicy(
            initial_backoff=2,
            max_attempts=5,
            continue_on={200, 404},
            retry_on=[429, 503],
            abort_on={403},
        )
        assert policy.initial_backoff == 2
        assert policy.max_attempts == 5
        assert policy.continue_on == frozenset({200, 404})
        assert policy.retry_on == frozenset({429, 503})
        assert policy.abort_on == frozenset({403})

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.abort_on is None
        assert policy.unclassified == UnclassifiedAction.RETRY

    def test_max_attempts_zero(self):
        with pytest.raises(ValidationError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_negative_backoff(self):
        with pytest.raises(ValidationError, match="initial_backoff"):
            RetryPolicy(initial_backoff=-1)

    def test_zero_backoff_allowed(self):
        assert RetryPolicy(initial_backoff=0).initial_backoff == 0

    def test_overlapping_sets_rejected(self):
        with pytest.raises(ValidationError, match="continue_on and retry_on overlap on status codes: 503"):
            RetryPolicy(continue_on={503}, retry_on={503, 429})

    def test_overlap_with_abort_rejected(self):
        with pytest.raises(ValidationError, match="retry_on and abort_on"):
            RetryPolicy(retry_on={403}, abort_on={403})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            RetryPolicy(backoff=2)

    def test_policy_is_immutable(self):
        policy = RetryPolicy()
        with pytest.raises(ValidationError):
            policy.max_attempts = 10

    def test_unclassified_from_string(self):
        assert RetryPolicy(unclassified="raise").unclassified == UnclassifiedAction.RAISE


class TestRetryPolicyBehaviour:
    @pytest.fixture
    def policy(self):
        return RetryPolicy(
            initial_backoff=1,
            max_attempts=4,
            continue_on={200},
            retry_on={429, 503},
            abort_on={403},
        )

    @pytest.mark.parametrize(
        "status_code, decision",
        [
            (200, RetryDecision.CONTINUE),
            (429, RetryDecision.RETRY),
            (503, RetryDecision.RETRY),
            (403, RetryDecision.ABORT),
            (500, RetryDecision.UNSPECIFIED_RETRY),
        ],
    )
    def test_classify(self, policy, status_code, decision):
        assert policy.classify(status_code) == decision

    def test_classify_without_abort_set(self):
        policy = RetryPolicy(retry_on={503})
        assert policy.classify(403) == RetryDecision.UNSPECIFIED_RETRY

    def test_backoff_schedule(self, policy):
        assert [policy.backoff_before(k) for k in (1, 2, 3)] == [1, 2, 4]

    def test_no_retry_policy(self):
        policy = RetryPolicy.no_retry()
        assert policy.max_attempts == 1
        assert policy.classify(503) == RetryDecision.RAISE

    def test_with_codes_revalidates(self, policy):
        updated = policy.with_codes(retry_on=frozenset({404}))
        assert updated.retry_on == frozenset({404})
        assert updated.continue_on == policy.continue_on
        with pytest.raises(ValidationError):
            policy.with_codes(retry_on=frozenset({200}))

    def test_with_codes_can_remove_abort_set(self):
        policy = RetryPolicy(retry_on={503}, abort_on={401, 403})

        assert policy.with_codes(retry_on=frozenset({429})).abort_on == frozenset({401, 403})
        cleared = policy.with_codes(abort_on=None)
        assert cleared.abort_on is None
        assert cleared.retry_on == frozenset({503})
        assert cleared.classify(403) == RetryDecision.UNSPECIFIED_RETRY
