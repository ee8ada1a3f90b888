"""Ordered heuristic cascades used by the field extractors."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Strategy:
    """A named extraction pass returning a validated value or ``None``."""

    name: str
    fn: Callable[..., Optional[Any]]

    def __call__(self, *args, **kwargs) -> Optional[Any]:
        return self.fn(*args, **kwargs)


def run_cascade(field: str, strategies: Iterable[Strategy], *args, **kwargs) -> Optional[Any]:
    """Evaluate strategies in order and return the first non-empty result."""
    for strategy in strategies:
        value = strategy(*args, **kwargs)
        if value:
            logger.debug("%s resolved by %s strategy", field, strategy.name)
            return value
    logger.debug("%s not found by any strategy", field)
    return None
