"""
Adaptive technique selection and application.

The optimizer classifies the task, measures the complexity of the candidate
files, scores every technique in the catalog (compatibility, time and quality
adjustments, and historical quality for the same task signature), applies the
winner and records the outcome so later requests with the same signature can
lean on what worked.
"""

from dataclasses import replace
import time

from constants import COST_PER_TOKEN, TASK_CLASS_KEYWORDS
from core.compression import secondary_compress
from core.exceptions import OptimizationError
from core.history import OptimizationHistory, ResultMemo
from core.models import (
    OptimizableFile,
    OptimizationConstraints,
    OptimizationResult,
    TaskSignature,
    TechniqueOutput,
    TokenSavings,
)
from core.techniques import TECHNIQUES, TechniqueEnv, TechniqueName
from core.tokens import RatioTokenCounter, TokenCounter
from models import TaskClass
from utils import debug

# Below this time budget (ms) extreme compression is favoured.
FAST_PATH_MS = 2000
# Above this quality requirement smart summarization is favoured.
HIGH_QUALITY = 0.8
# Quality requirement used by the real-time path.
REAL_TIME_QUALITY = 0.8


class ContextOptimizer:
    """
    Selects and applies optimization techniques.

    Attributes:
        counter: Token estimator shared with every technique.
        history: Learning state keyed by task signature.
        memo: Result memo used by adaptive caching.
        primary_language: Language favoured by the techniques' file ranking.
    """

    def __init__(
        self,
        counter: TokenCounter | None = None,
        history: OptimizationHistory | None = None,
        result_memo: ResultMemo | None = None,
        primary_language: str | None = None,
    ):
        self.counter = counter or RatioTokenCounter()
        self.history = history or OptimizationHistory()
        self.memo = result_memo or ResultMemo()
        self.primary_language = primary_language

    def _env(self, primary_language: str | None) -> TechniqueEnv:
        return TechniqueEnv(
            counter=self.counter,
            memo=self.memo,
            primary_language=primary_language or self.primary_language,
        )

    @staticmethod
    def classify_task(task: str) -> TaskClass:
        lowered = task.lower()
        for task_class, keywords in TASK_CLASS_KEYWORDS:
            if any(k in lowered for k in keywords):
                return task_class
        return TaskClass.GENERAL

    @staticmethod
    def aggregate_complexity(files: list[OptimizableFile]) -> float:
        if not files:
            return 0.0
        total = sum(
            5 * len(f.classes) + 2 * len(f.functions) + f.complexity for f in files
        )
        return total / len(files)

    def score_techniques(
        self,
        files: list[OptimizableFile],
        task: str,
        constraints: OptimizationConstraints,
    ) -> list[tuple[TechniqueName, float]]:
        """
        Score every technique for a request, in catalog order.

        Returns:
            (technique, score) pairs.
        """
        task_class = self.classify_task(task)
        complexity = self.aggregate_complexity(files)
        signature = TaskSignature.from_request(task, constraints)

        scored: list[tuple[TechniqueName, float]] = []
        for name, technique in TECHNIQUES.items():
            score = float(technique.compatibility(task_class, complexity))
            if constraints.time_constraint_ms < FAST_PATH_MS:
                score += 20 if name == TechniqueName.EXTREME_COMPRESSION else -10
            if (
                constraints.quality_requirement > HIGH_QUALITY
                and name == TechniqueName.SMART_SUMMARIZATION
            ):
                score += 15
            past_quality = self.history.average_quality(signature, name)
            if past_quality is not None:
                score += 10 * past_quality
            scored.append((name, score))
        return scored

    def select_technique(
        self,
        files: list[OptimizableFile],
        task: str,
        constraints: OptimizationConstraints,
    ) -> TechniqueName:
        scored = self.score_techniques(files, task, constraints)
        best_name, best_score = scored[0]
        # Strict comparison keeps the earliest technique on ties
        for name, score in scored[1:]:
            if score > best_score:
                best_name, best_score = name, score
        debug("Technique scores:", scored, "->", best_name)
        return best_name

    def _apply(
        self,
        name: TechniqueName,
        files: list[OptimizableFile],
        task: str,
        constraints: OptimizationConstraints,
        primary_language: str | None,
    ) -> TechniqueOutput:
        try:
            return TECHNIQUES[name].optimize(
                files, task, constraints, self._env(primary_language)
            )
        except Exception as e:
            raise OptimizationError(str(name), original_exception=e) from e

    def optimize_intelligently(
        self,
        files: list[OptimizableFile],
        task: str,
        constraints: OptimizationConstraints,
        primary_language: str | None = None,
    ) -> OptimizationResult:
        """
        Select the best technique for a request, apply it and learn from the outcome.

        Raises:
            OptimizationError: If the selected technique fails.
        """
        start = time.perf_counter()
        name = self.select_technique(files, task, constraints)
        output = self._apply(name, files, task, constraints, primary_language)
        self.history.record(TaskSignature.from_request(task, constraints), name, output)

        return OptimizationResult(
            content=output.content,
            estimated_tokens=output.estimated_tokens,
            technique=str(name),
            confidence=output.confidence,
            quality_score=output.quality_score,
            time_taken_ms=(time.perf_counter() - start) * 1000,
        )

    def optimize_real_time(
        self,
        files: list[OptimizableFile],
        task: str,
        target_tokens: int,
        time_limit_ms: int,
        primary_language: str | None = None,
    ) -> OptimizationResult:
        """
        Produce context under a hard token target.

        Always uses extreme compression. When its output exceeds target_tokens,
        secondary compression runs and the technique name gains a " + Secondary"
        suffix.

        Raises:
            OptimizationError: If the technique fails.
        """
        start = time.perf_counter()
        constraints = OptimizationConstraints(
            token_budget=target_tokens,
            time_constraint_ms=time_limit_ms,
            quality_requirement=REAL_TIME_QUALITY,
        )
        name = TechniqueName.EXTREME_COMPRESSION
        output = self._apply(name, files, task, constraints, primary_language)

        secondary = output.estimated_tokens > target_tokens
        if secondary:
            output = secondary_compress(output, target_tokens, self.counter, task)

        result = OptimizationResult(
            content=output.content,
            estimated_tokens=output.estimated_tokens,
            technique=str(name),
            confidence=output.confidence,
            quality_score=output.quality_score,
            time_taken_ms=(time.perf_counter() - start) * 1000,
        )
        if secondary:
            result = replace(
                result, technique=f"{name} + Secondary", secondary_applied=True
            )
        return result

    @staticmethod
    def calculate_token_savings(
        original_tokens: int, optimized_tokens: int
    ) -> TokenSavings:
        saved = original_tokens - optimized_tokens
        percentage = (saved / original_tokens * 100) if original_tokens > 0 else 0.0
        return TokenSavings(
            original_tokens=original_tokens,
            optimized_tokens=optimized_tokens,
            saved_tokens=saved,
            savings_percentage=percentage,
            cost_savings=saved * COST_PER_TOKEN,
        )
