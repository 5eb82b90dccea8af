"""
Token counting and usage accounting.

This module provides token counting implementations (the fixed-ratio estimator
used for every budget comparison, a tiktoken-backed alternative, and a test
mock) plus the daily/monthly usage tracker whose state is persisted alongside
the project cache.
"""

from dataclasses import dataclass
from datetime import datetime
import math
from typing import Any, Callable, Protocol

import tiktoken

from constants import COST_PER_TOKEN, TOKEN_RATIO
from core.models import TokenSavings
from utils import utc_now


class TokenCounter(Protocol):
    """Protocol for counting tokens in text."""

    def count(self, text: str | None) -> int:
        """Count tokens in the given text."""


class RatioTokenCounter:
    """
    Default TokenCounter: a fixed characters-to-tokens ratio.

    Estimates `ceil(len(text) * ratio)`; with the default ratio of 0.25 that is
    one token per four characters. The estimate is monotonic in text length,
    which is what budget comparisons rely on.
    """

    def __init__(self, ratio: float = TOKEN_RATIO):
        self.ratio = ratio

    def count(self, text: str | None) -> int:
        if not text:
            return 0
        return math.ceil(len(text) * self.ratio)


class TiktokenCounter:
    """
    TokenCounter backed by tiktoken.

    Uses tiktoken to count tokens for a specific model. Falls back to
    cl100k_base encoding if the model name is not recognized.
    """

    def __init__(self, model_name: str = "gpt-4o"):
        """
        Initialize the token counter for the specified model.

        Args:
            model_name: The model name to use for token encoding. Defaults to "gpt-4o".
                If the model is not recognized, falls back to cl100k_base encoding.
        """
        try:
            self.encoder = tiktoken.encoding_for_model(model_name)
        except KeyError:
            self.encoder = tiktoken.get_encoding("cl100k_base")

    def count(self, text: str | None) -> int:
        """
        Count tokens in the given text.

        Args:
            text: The text to count tokens for. If None or empty, returns 0.

        Returns:
            The number of tokens in the text.
        """
        if not text:
            return 0
        return len(self.encoder.encode(text))


class NoOpTokenCounter:
    """
    No-op implementation of TokenCounter for testing.

    Returns configurable token counts, allowing tests to control token counting
    behavior without requiring tiktoken dependencies or actual token encoding.
    """

    def __init__(
        self,
        return_value: int | None = None,
        count_fn: Callable[[str | None], int] | None = None,
    ):
        """
        Initialize NoOpTokenCounter with configurable counting behavior.

        Args:
            return_value: If provided, always returns this value regardless of input.
                Takes precedence over count_fn if both are provided.
            count_fn: Optional callable that takes text and returns a token count.
                If return_value is None, this will be used. If both are None,
                defaults to returning 0.
        """
        self.return_value = return_value
        self.count_fn = count_fn

    def count(self, text: str | None) -> int:
        """Count tokens in the given text (returns configured value)."""
        if self.return_value is not None:
            return self.return_value
        if self.count_fn is not None:
            return self.count_fn(text)
        return 0


def create_token_counter(kind: str = "ratio", model_name: str = "gpt-4o") -> TokenCounter:
    """
    Build the token counter named in the user settings.

    Args:
        kind: "ratio" for the fixed-ratio estimator, "tiktoken" for a real tokenizer.
        model_name: Model passed to tiktoken when kind is "tiktoken".

    Raises:
        ValueError: If kind is not recognized.
    """
    if kind == "ratio":
        return RatioTokenCounter()
    if kind == "tiktoken":
        return TiktokenCounter(model_name)
    raise ValueError(f"Unknown token counter: {kind}")


@dataclass(frozen=True)
class TokenLimits:
    """Immutable default policy for token usage limits."""

    daily: int = 50_000
    monthly: int = 1_000_000


@dataclass
class TokenStats:
    """Mutable usage counters persisted under `tokenStats` in the cache document."""

    daily_usage: int = 0
    daily_limit: int = TokenLimits.daily
    monthly_usage: int = 0
    monthly_limit: int = TokenLimits.monthly
    total_saved: int = 0
    money_saved: float = 0.0
    last_recorded: datetime | None = None

    @property
    def daily_remaining(self) -> int:
        return self.daily_limit - self.daily_usage

    @property
    def monthly_remaining(self) -> int:
        return self.monthly_limit - self.monthly_usage

    def to_dict(self) -> dict[str, Any]:
        return {
            "daily_usage": self.daily_usage,
            "daily_limit": self.daily_limit,
            "monthly_usage": self.monthly_usage,
            "monthly_limit": self.monthly_limit,
            "total_saved": self.total_saved,
            "money_saved": self.money_saved,
            "last_recorded": (
                self.last_recorded.isoformat() if self.last_recorded else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenStats":
        last = data.get("last_recorded")
        return cls(
            daily_usage=int(data.get("daily_usage", 0)),
            daily_limit=int(data.get("daily_limit", TokenLimits.daily)),
            monthly_usage=int(data.get("monthly_usage", 0)),
            monthly_limit=int(data.get("monthly_limit", TokenLimits.monthly)),
            total_saved=int(data.get("total_saved", 0)),
            money_saved=float(data.get("money_saved", 0.0)),
            last_recorded=datetime.fromisoformat(last) if last else None,
        )


class TokenUsageTracker:
    """
    Tracks token consumption against daily and monthly limits.

    Usage counters roll over automatically: the daily counter resets when a
    recording happens on a new calendar day, the monthly counter when it
    happens in a new month.
    """

    def __init__(
        self,
        stats: TokenStats | None = None,
        limits: TokenLimits | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.stats = stats or TokenStats()
        if stats is None and limits is not None:
            self.stats.daily_limit = limits.daily
            self.stats.monthly_limit = limits.monthly
        self.clock = clock

    def _roll_over(self, now: datetime) -> None:
        last = self.stats.last_recorded
        if last is None:
            return
        if (now.year, now.month) != (last.year, last.month):
            self.stats.monthly_usage = 0
            self.stats.daily_usage = 0
        elif now.date() != last.date():
            self.stats.daily_usage = 0

    def record_savings(self, savings: TokenSavings) -> int:
        """
        Record the tokens consumed and saved by one engine call.

        Args:
            savings: Savings of the optimized output against its source.

        Returns:
            Remaining daily tokens after this call (may be negative when the
            limit has been exceeded).
        """
        now = self.clock()
        self._roll_over(now)
        self.stats.daily_usage += savings.optimized_tokens
        self.stats.monthly_usage += savings.optimized_tokens
        self.stats.total_saved += savings.saved_tokens
        self.stats.money_saved += savings.saved_tokens * COST_PER_TOKEN
        self.stats.last_recorded = now
        return self.stats.daily_remaining

    def reset_usage(self) -> None:
        """Zero the daily and monthly usage counters. Savings totals are kept."""
        self.stats.daily_usage = 0
        self.stats.monthly_usage = 0

    def set_limit(self, spec: str) -> tuple[str, int]:
        """
        Update a limit from a `kind:value` string such as "daily:30000".

        Returns:
            The (kind, value) pair that was applied.

        Raises:
            ValueError: If the string is malformed, the kind is not "daily" or
                "monthly", or the value is not a positive integer.
        """
        kind, sep, raw_value = spec.partition(":")
        kind = kind.strip().lower()
        if not sep or kind not in ("daily", "monthly"):
            raise ValueError(
                f"Invalid limit '{spec}'. Expected daily:<tokens> or monthly:<tokens>"
            )
        try:
            value = int(raw_value.strip())
        except ValueError as e:
            raise ValueError(f"Invalid limit value '{raw_value}'") from e
        if value <= 0:
            raise ValueError("Limits must be positive")

        if kind == "daily":
            self.stats.daily_limit = value
        else:
            self.stats.monthly_limit = value
        return kind, value

    def to_dict(self) -> dict[str, Any]:
        return self.stats.to_dict()
