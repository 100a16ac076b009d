from keyvault_samples.domain.models.retry_policy import RetryDecision, RetryPolicy, UnclassifiedAction

__all__ = ["RetryDecision", "RetryPolicy", "UnclassifiedAction"]
