"""Independent side effects dispatched after a mutation commits."""

import inspect
import logging
from typing import Any, Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)


class PostCommitActions:
    """Collects side effects (event publish, notifications) for one mutation.

    Each action runs on its own; a failure is logged and never stops the
    remaining actions or reaches the caller. The committed mutation is never
    rolled back.
    """

    def __init__(self, label: str):
        self.label = label
        self._actions: List[Tuple[str, Callable[..., Any], tuple, dict]] = []

    def add(self, name: str, func: Callable[..., Any], *args, **kwargs) -> "PostCommitActions":
        self._actions.append((name, func, args, kwargs))
        return self

    async def run(self) -> Dict[str, bool]:
        """Run every action; returns name -> succeeded."""
        results: Dict[str, bool] = {}
        for name, func, args, kwargs in self._actions:
            try:
                outcome = func(*args, **kwargs)
                if inspect.isawaitable(outcome):
                    await outcome
                results[name] = True
            except Exception as e:
                logger.error(f"[{self.label}] Post-commit action '{name}' failed: {type(e).__name__}: {e}")
                results[name] = False
        return results
