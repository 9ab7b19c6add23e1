"""Ordered fallback: try each strategy until one produces an acceptable value.

Used for both auto-mode extraction (html, then browser) and the hybrid OCR
base layer (cloud, then local). A strategy fails by raising, returning None,
or returning a value the ``accept`` predicate rejects. Exceptions listed as
terminal propagate immediately and are never escalated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, TypeVar

from labelguard.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Strategy(Generic[T]):
    name: str
    run: Callable[[], Awaitable[T | None]]


@dataclass(frozen=True)
class Failure:
    """Why one strategy did not produce a result."""

    strategy: str
    reason: str


@dataclass
class FallbackResult(Generic[T]):
    value: T
    strategy: str
    failures: list[Failure] = field(default_factory=list)


class FallbackExhausted(Exception):
    """Every strategy failed."""

    def __init__(self, failures: list[Failure]) -> None:
        summary = "; ".join(f"{f.strategy}: {f.reason}" for f in failures) or "no strategies"
        super().__init__(f"All strategies failed ({summary})")
        self.failures = failures


def _not_none(value: object) -> bool:
    return value is not None


async def run_fallback(
    strategies: list[Strategy[T]],
    *,
    accept: Callable[[T], bool] = _not_none,
    terminal: tuple[type[BaseException], ...] = (),
    on_start: Callable[[Strategy[T]], None] | None = None,
) -> FallbackResult[T]:
    """Run strategies in order and return the first accepted value."""
    failures: list[Failure] = []
    for strategy in strategies:
        if on_start is not None:
            on_start(strategy)
        try:
            value = await strategy.run()
        except terminal:
            raise
        except Exception as exc:
            failures.append(Failure(strategy.name, str(exc) or type(exc).__name__))
            emit_structured_error(
                logger,
                code=ErrorCode.STRATEGY_FAILED,
                message=str(exc),
                suppressed=True,
                phase=strategy.name,
                details={"exception_type": type(exc).__name__},
            )
            continue

        if value is None:
            failures.append(Failure(strategy.name, "no result"))
        elif not accept(value):
            failures.append(Failure(strategy.name, "incomplete result"))
        else:
            return FallbackResult(value=value, strategy=strategy.name, failures=failures)
        logger.info(
            "strategy produced no usable result",
            extra={"strategy": strategy.name, "reason": failures[-1].reason},
        )

    raise FallbackExhausted(failures)
