"""
Bounded in-memory learning state for the optimizer.

OptimizationHistory keeps per-technique running averages for each task
signature; ResultMemo keeps whole technique outputs for adaptive caching. Both
evict the least recently used key once they exceed their capacity.
"""

from collections import OrderedDict
from typing import Hashable

from core.models import TaskSignature, TechniqueOutput, TechniqueStats


class OptimizationHistory:
    """
    Per task signature, the running performance of every technique used for it.

    Attributes:
        max_signatures: Number of signatures retained before LRU eviction.
    """

    def __init__(self, max_signatures: int = 512):
        if max_signatures <= 0:
            raise ValueError("max_signatures must be positive")
        self.max_signatures = max_signatures
        self._entries: OrderedDict[TaskSignature, dict[str, TechniqueStats]] = (
            OrderedDict()
        )

    def lookup(self, signature: TaskSignature) -> dict[str, TechniqueStats] | None:
        stats = self._entries.get(signature)
        if stats is not None:
            self._entries.move_to_end(signature)
        return stats

    def average_quality(self, signature: TaskSignature, technique: str) -> float | None:
        """Average quality recorded for a technique, or None without history."""
        stats = self._entries.get(signature)
        if stats is None or technique not in stats:
            return None
        return stats[technique].average_quality

    def record(
        self, signature: TaskSignature, technique: str, output: TechniqueOutput
    ) -> TechniqueStats:
        per_technique = self._entries.setdefault(signature, {})
        self._entries.move_to_end(signature)
        stats = per_technique.setdefault(technique, TechniqueStats())
        stats.record(output.quality_score, output.estimated_tokens)

        while len(self._entries) > self.max_signatures:
            self._entries.popitem(last=False)
        return stats

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, signature: object) -> bool:
        return signature in self._entries


class ResultMemo:
    """LRU memo of technique outputs, used by adaptive caching."""

    def __init__(self, max_entries: int = 128):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: OrderedDict[Hashable, TechniqueOutput] = OrderedDict()

    def get(self, key: Hashable) -> TechniqueOutput | None:
        output = self._entries.get(key)
        if output is not None:
            self._entries.move_to_end(key)
        return output

    def put(self, key: Hashable, output: TechniqueOutput) -> None:
        self._entries[key] = output
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)
