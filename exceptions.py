"""
Custom Exception Hierarchy - Domain-specific error types

Provides typed exceptions for the failure modes of the deliberation engine.
All custom exceptions inherit from DeliberationError for easy catching.

Insufficient data for clustering and degenerate PCA directions are NOT
exceptions: the pipeline reports them in its result. Only mining outcomes,
weight policy violations and bad configuration are raised.
"""

from typing import Optional, Dict, Any


class DeliberationError(Exception):
    """Base exception for all deliberation engine errors

    All custom exceptions inherit from this, enabling:
    - Catch all engine errors with single except clause
    - Distinguish our errors from library errors
    - Add common attributes (context)
    - Check if error is retryable via is_retryable property
    """

    # Default: errors are not retryable (permanent failure)
    _retryable: bool = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Check if the caller may sensibly retry the operation.

        Returns:
            True when a retry (possibly with different parameters) can succeed
            False for cancellations and invalid input
        """
        return self._retryable

    def __str__(self):
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


# ========== Mining Errors ==========


class MiningError(DeliberationError):
    """Proof-of-work mining did not produce a qualifying payload

    Includes the target difficulty and how many nonces were tried.
    """

    def __init__(
        self,
        message: str,
        target_difficulty: Optional[int] = None,
        iterations: Optional[int] = None,
    ):
        self.target_difficulty = target_difficulty
        self.iterations = iterations

        context = {}
        if target_difficulty is not None:
            context['target_difficulty'] = target_difficulty
        if iterations is not None:
            context['iterations'] = iterations

        super().__init__(message, context)


class MiningAborted(MiningError):
    """Mining was cancelled by the caller

    Never retried automatically: the caller asked for it to stop.
    """
    pass


class MiningExhausted(MiningError):
    """Mining spent its iteration budget without reaching the target

    Retryable: the caller may try again at a lower difficulty tier.
    """

    _retryable = True


# ========== Weight Errors ==========


class WeightError(DeliberationError):
    """Vote weight computation failures"""
    pass


class InvalidWeightError(WeightError):
    """A weight input or combination is outside the valid domain

    Examples:
    - Work-based weight below 1
    - Negative, zero, NaN or infinite trust multiplier
    """

    def __init__(self, message: str, pow_weight: Optional[float] = None, trust_weight: Optional[float] = None):
        self.pow_weight = pow_weight
        self.trust_weight = trust_weight

        context = {}
        if pow_weight is not None:
            context['pow_weight'] = pow_weight
        if trust_weight is not None:
            context['trust_weight'] = trust_weight

        super().__init__(message, context)


# ========== Configuration Errors ==========


class ConfigurationError(DeliberationError):
    """Configuration or environment errors

    Examples:
    - Invalid configuration value
    - Non-positive iteration budget
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        context = {}
        if config_key:
            context['config_key'] = config_key
        super().__init__(message, context)


# ========== Validation Errors ==========


class ValidationError(DeliberationError):
    """Data validation failures

    Examples:
    - Malformed hex digest
    - Payload missing required field
    - Value out of range
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        self.field = field
        self.value = value

        context = {}
        if field:
            context['field'] = field
        if value is not None:
            context['value'] = str(value)

        super().__init__(message, context)
