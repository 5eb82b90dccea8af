"""
Relevance scoring of project files against a task description.

The scorer combines independently computed factors (file kind, language,
complexity, size, freshness, task keywords and framework conventions) into a
single score clamped to [0, 1]. Every factor that contributes appends a
ScoringReason, so a ranking can always be explained.

Scores depend only on the path, the task and the project context: freshness is
measured against the snapshot's capture time, not the wall clock, so scoring
the same snapshot twice yields identical results.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
import re
from typing import Callable, Mapping

from constants import (
    CATEGORY_BONUSES,
    DEFAULT_KIND_WEIGHT,
    FRAMEWORK_CONVENTIONS,
    STOP_WORDS,
)
from core.exceptions import FileIOError
from core.file_io import FileReader, FilesystemFileReader
from core.models import (
    FileScoreMetadata,
    ProjectSnapshot,
    RelevanceScore,
    ScoringReason,
)
from models import FileKind
from utils import debug, utc_now, warn

_NON_WORD = re.compile(r"[^\w]")

# Threshold a score must exceed to be selected as context.
SELECTION_THRESHOLD = 0.1


def _default_kind(path: str) -> FileKind:
    name = PurePosixPath(path).name.lower()
    if "test" in name or "spec" in name:
        return FileKind.TEST
    if name.endswith((".md", ".rst", ".txt")):
        return FileKind.DOCUMENTATION
    return FileKind.SOURCE


def _default_complexity(content: str) -> int:
    hits = re.findall(r"\b(?:if|for|while|case|catch|except)\b|&&|\|\|", content)
    return 1 + len(hits)


def extract_task_keywords(task: str) -> list[str]:
    """
    Turn a task description into de-duplicated lowercase keywords.

    Tokens are split on whitespace and stripped of non-word characters. Stop
    words and tokens of two characters or fewer are dropped.
    """
    keywords: list[str] = []
    for raw in task.split():
        word = _NON_WORD.sub("", raw).lower()
        if len(word) > 2 and word not in STOP_WORDS and word not in keywords:
            keywords.append(word)
    return keywords


def determine_importance(path: str, kind: FileKind) -> str:
    name = PurePosixPath(path).name.lower()
    stem = name.rsplit(".", 1)[0]
    if name == "__init__.py" or stem in ("main", "app", "index", "server"):
        return "critical"
    if stem in ("settings", "config") or kind == FileKind.CONFIG:
        return "high"
    if kind == FileKind.TEST:
        return "low"
    return "medium"


_CATEGORY_DIRS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("models",), "model"),
    (("views",), "view"),
    (("controllers",), "controller"),
    (("components",), "component"),
    (("utils", "helpers"), "utility"),
    (("services",), "service"),
    (("api", "routes"), "api"),
    (("config",), "configuration"),
    (("test", "tests", "__tests__"), "test"),
    (("migrations",), "migration"),
)


def determine_category(path: str) -> str:
    parent = str(PurePosixPath(path).parent).lower()
    for markers, category in _CATEGORY_DIRS:
        if any(marker in parent for marker in markers):
            return category
    return "general"


@dataclass(frozen=True)
class ScorerConfig:
    """
    Weights and conventions for a language's relevance scorer.

    Attributes:
        language: The plugin's primary language.
        file_kind_weights: Weight per file kind; unknown kinds use DEFAULT_KIND_WEIGHT.
        language_weights: Weight per language; unknown languages use 0.5.
        complexity_weight: Multiplier of min(complexity / 100, 1).
        size_weight: Multiplier of the size score.
        freshness_weight: Multiplier of the freshness score.
        size_ceiling: Size in bytes at which the size score reaches 0.
        freshness_days: Days after which the freshness score reaches 0.
        max_context_files: Default selection size.
        keyword_weight: Added per task keyword found in the path.
        category_bonuses: (task words, basename markers, bonus, factor, description).
        framework_conventions: Lowercase framework name to path markers.
        framework_bonus: Framework score awarded on a convention match.
        classify_kind: Assigns a FileKind to paths missing from the context.
        estimate_complexity: Complexity of file content missing from the context.
    """

    language: str
    file_kind_weights: Mapping[FileKind, float] = field(default_factory=dict)
    language_weights: Mapping[str, float] = field(default_factory=dict)
    complexity_weight: float = 0.3
    size_weight: float = 0.2
    freshness_weight: float = 0.1
    size_ceiling: int = 10_000
    freshness_days: int = 30
    max_context_files: int = 50
    keyword_weight: float = 0.3
    category_bonuses: tuple[
        tuple[tuple[str, ...], tuple[str, ...], float, str, str], ...
    ] = CATEGORY_BONUSES
    framework_conventions: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(FRAMEWORK_CONVENTIONS)
    )
    framework_bonus: float = 0.3
    classify_kind: Callable[[str], FileKind] = _default_kind
    estimate_complexity: Callable[[str], int] = _default_complexity


class RelevanceScorer:
    """
    ContextScorer implementation shared by all language plugins.

    Language-specific behavior comes entirely from the ScorerConfig.
    """

    def __init__(
        self,
        config: ScorerConfig,
        file_reader: FileReader | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.file_reader = file_reader or FilesystemFileReader()
        self.clock = clock

    def score_file_relevance(
        self, file_path: str, task: str, context: ProjectSnapshot | None = None
    ) -> RelevanceScore:
        cfg = self.config
        reference = context.captured_at if context else self.clock()
        metadata = self._file_metadata(file_path, context, reference)
        reasons: list[ScoringReason] = []

        kind_weight = cfg.file_kind_weights.get(metadata.kind, DEFAULT_KIND_WEIGHT)
        reasons.append(
            ScoringReason("file_type", kind_weight, f"File type: {metadata.kind}")
        )
        language_weight = cfg.language_weights.get(metadata.language, 0.5)
        reasons.append(
            ScoringReason("language", language_weight, f"Language: {metadata.language}")
        )

        complexity_score = min(metadata.complexity / 100, 1.0)
        size_score = max(0.0, (cfg.size_ceiling - metadata.size_bytes) / cfg.size_ceiling)
        age_days = (reference - metadata.last_modified).total_seconds() / 86_400
        freshness_score = min(1.0, max(0.0, 1 - age_days / cfg.freshness_days))

        if complexity_score > 0:
            reasons.append(
                ScoringReason(
                    "complexity",
                    complexity_score * cfg.complexity_weight,
                    f"Complexity: {metadata.complexity}",
                )
            )
        if size_score > 0:
            reasons.append(
                ScoringReason(
                    "size",
                    size_score * cfg.size_weight,
                    f"Size: {metadata.size_bytes} bytes",
                )
            )
        if freshness_score > 0:
            reasons.append(
                ScoringReason(
                    "freshness",
                    freshness_score * cfg.freshness_weight,
                    f"Modified {max(age_days, 0):.1f} days ago",
                )
            )

        task_score = self._task_relevance(file_path, task, reasons)
        framework_score = self._framework_alignment(file_path, context, reasons)

        score = (
            kind_weight * kind_weight * 0.3
            + language_weight * language_weight * 0.2
            + complexity_score * cfg.complexity_weight
            + size_score * cfg.size_weight
            + freshness_score * cfg.freshness_weight
            + task_score * 0.4
            + framework_score * 0.2
        )
        return RelevanceScore(
            file_path=file_path,
            score=max(0.0, min(1.0, score)),
            reasons=tuple(reasons),
            metadata=metadata,
        )

    def score_files(
        self, file_paths: list[str], task: str, context: ProjectSnapshot | None = None
    ) -> list[RelevanceScore]:
        scores: list[RelevanceScore] = []
        for path in file_paths:
            try:
                scores.append(self.score_file_relevance(path, task, context))
            except (OSError, ValueError, FileIOError) as e:
                warn(f"Failed to score file {path}: {e}")
        return sorted(scores, key=lambda s: s.score, reverse=True)

    def select_context_files(
        self,
        file_paths: list[str],
        task: str,
        context: ProjectSnapshot | None = None,
        max_files: int | None = None,
    ) -> list[RelevanceScore]:
        limit = max_files if max_files is not None else self.config.max_context_files
        selected = [
            s
            for s in self.score_files(file_paths, task, context)
            if s.score > SELECTION_THRESHOLD
        ]
        return selected[:limit]

    def _file_metadata(
        self, file_path: str, context: ProjectSnapshot | None, reference: datetime
    ) -> FileScoreMetadata:
        descriptor = context.files_by_path().get(file_path) if context else None
        if descriptor is not None:
            return FileScoreMetadata(
                kind=descriptor.kind,
                language=descriptor.language,
                size_bytes=descriptor.size_bytes,
                complexity=descriptor.complexity,
                last_modified=descriptor.last_modified,
                importance=determine_importance(file_path, descriptor.kind),
                category=determine_category(file_path),
            )

        kind = self.config.classify_kind(file_path)
        full_path = Path(file_path)
        if context and not full_path.is_absolute():
            full_path = Path(context.root_path) / file_path

        # Unreadable files degrade to neutral metadata instead of failing the score
        size, complexity, modified = 0, 1, reference
        try:
            stat = full_path.stat()
            size = stat.st_size
            modified = datetime.fromtimestamp(stat.st_mtime, tz=reference.tzinfo)
            content = self.file_reader.read_file(full_path)
            complexity = min(self.config.estimate_complexity(content), 100)
        except (OSError, FileIOError) as e:
            debug(f"Scoring {file_path} without file metadata: {e}")

        return FileScoreMetadata(
            kind=kind,
            language=self.config.language,
            size_bytes=size,
            complexity=complexity,
            last_modified=modified,
            importance=determine_importance(file_path, kind),
            category=determine_category(file_path),
        )

    def _task_relevance(
        self, file_path: str, task: str, reasons: list[ScoringReason]
    ) -> float:
        path_lower = file_path.lower()
        basename = PurePosixPath(path_lower).name
        relevance = 0.0

        for keyword in extract_task_keywords(task):
            if keyword in path_lower:
                relevance += self.config.keyword_weight
                reasons.append(
                    ScoringReason(
                        "task_keyword",
                        self.config.keyword_weight,
                        f"Contains task keyword: {keyword}",
                    )
                )

        task_lower = task.lower()
        for words, markers, bonus, factor, description in self.config.category_bonuses:
            if any(w in task_lower for w in words) and any(m in basename for m in markers):
                relevance += bonus
                reasons.append(ScoringReason(factor, bonus, description))

        return min(relevance, 1.0)

    def _framework_alignment(
        self,
        file_path: str,
        context: ProjectSnapshot | None,
        reasons: list[ScoringReason],
    ) -> float:
        if context is None or not context.framework:
            return 0.0
        framework = context.framework.lower()
        markers = self.config.framework_conventions.get(framework, ())
        path_lower = file_path.lower()
        if any(marker in path_lower for marker in markers):
            reasons.append(
                ScoringReason(
                    "framework_match",
                    self.config.framework_bonus,
                    f"{context.framework} framework file",
                )
            )
            return self.config.framework_bonus
        return 0.0
