"""Tagged results for sequential pipeline stages."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StageStatus(StrEnum):
    SUCCESS = "success"
    FALLBACK = "fallback"
    ERROR = "error"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of one stage: a usable value plus how it was obtained.

    FALLBACK means the stage ran but produced nothing usable and the default was
    substituted; ERROR means the stage raised and the default was substituted.
    """

    name: str
    value: T
    status: StageStatus = StageStatus.SUCCESS
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is StageStatus.SUCCESS


async def run_stage(
    name: str,
    call: Callable[[], Awaitable[T]],
    *,
    default: T,
    is_usable: Callable[[T], bool] = bool,
) -> StageResult[T]:
    """Await ``call`` and tag the outcome; never raises for ordinary exceptions."""
    try:
        value = await call()
    except Exception as e:
        logger.warning("Stage %s failed, using fallback: %s", name, e)
        return StageResult(
            name=name, value=default, status=StageStatus.ERROR, error=f"{name}: {e}"
        )
    if not is_usable(value):
        logger.info("Stage %s returned nothing usable, using fallback", name)
        return StageResult(name=name, value=default, status=StageStatus.FALLBACK)
    return StageResult(name=name, value=value)


def collect_errors(*results: StageResult) -> str | None:
    """Join stage error messages, or None if every stage succeeded or fell back."""
    errors = [r.error for r in results if r.error]
    return "; ".join(errors) if errors else None
