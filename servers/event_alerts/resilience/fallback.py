"""Fallback chain for trying extraction strategies in order."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class FallbackOutcome(Generic[T]):
    """Result of a fallback chain: the value and which step produced it."""

    value: T
    step: str
    errors: dict[str, Exception] = field(default_factory=dict)

    @property
    def fell_back(self) -> bool:
        return bool(self.errors)


class FallbackChain(Generic[T]):
    """Run named async steps in order until one succeeds.

    Every failed step is logged and recorded; the caller learns which step
    finally produced the value. If all steps fail, the last error is raised.
    """

    def __init__(self, *steps: tuple[str, Callable[..., Awaitable[T]]], context: Any = None):
        """Initialize with ordered (name, async function) pairs.

        Args:
            *steps: Named async callables to try in order
            context: Extra value bound into log lines (e.g. the URL)
        """
        if not steps:
            raise ValueError("FallbackChain needs at least one step")
        self.steps = steps
        self.context = context

    async def execute(self, *args: Any, **kwargs: Any) -> FallbackOutcome[T]:
        """Call each step with the same arguments until one returns.

        Raises:
            Exception: the last step's error if every step fails
        """
        errors: dict[str, Exception] = {}

        for i, (name, func) in enumerate(self.steps):
            try:
                value = await func(*args, **kwargs)
            except Exception as e:
                errors[name] = e
                logger.warning(
                    "fallback_attempt_failed",
                    step=name,
                    attempt=i + 1,
                    total_steps=len(self.steps),
                    context=self.context,
                    error=str(e),
                )
                continue

            if i > 0:
                logger.info(
                    "fallback_used",
                    step=name,
                    attempt=i + 1,
                    context=self.context,
                )
            return FallbackOutcome(value=value, step=name, errors=errors)

        logger.error(
            "fallback_chain_exhausted",
            steps=[name for name, _ in self.steps],
            context=self.context,
            final_error=str(errors[self.steps[-1][0]]),
        )
        raise errors[self.steps[-1][0]]
