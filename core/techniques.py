"""
The optimization technique catalog.

Each technique is a pair of plain functions: `compatibility(task_class,
complexity)` reports how well the technique suits a request, and
`optimize(files, task, constraints, env)` turns a file list into budgeted
context text. The catalog is closed: TechniqueName enumerates every technique
in catalog order, and that order breaks selection ties.

No technique raises on well-formed input. An empty file list produces a
header-only output.
"""

from dataclasses import dataclass, field
from enum import StrEnum
import re
from typing import Callable

from constants import COMMENT_PREFIXES, DECLARATION_KEYWORDS
from core.history import ResultMemo
from core.models import OptimizableFile, OptimizationConstraints, TechniqueOutput
from core.scoring import extract_task_keywords
from core.tokens import RatioTokenCounter, TokenCounter
from models import TaskClass


class TechniqueName(StrEnum):
    EXTREME_COMPRESSION = "ExtremeCompression"
    SMART_SUMMARIZATION = "SmartSummarization"
    CONTEXTUAL_FILTERING = "ContextualFiltering"
    STRUCTURAL_OPTIMIZATION = "StructuralOptimization"
    SEMANTIC_COMPRESSION = "SemanticCompression"
    ADAPTIVE_CACHING = "AdaptiveCaching"


@dataclass
class TechniqueEnv:
    """
    Collaborators shared by every technique invocation.

    Attributes:
        counter: Token estimator applied to every produced text.
        memo: Result memo consulted by adaptive caching.
        primary_language: Language favoured by file ranking heuristics.
    """

    counter: TokenCounter = field(default_factory=RatioTokenCounter)
    memo: ResultMemo = field(default_factory=ResultMemo)
    primary_language: str | None = None


CompatibilityFn = Callable[[TaskClass, float], int]
OptimizeFn = Callable[
    [list[OptimizableFile], str, OptimizationConstraints, TechniqueEnv],
    TechniqueOutput,
]


@dataclass(frozen=True)
class Technique:
    compatibility: CompatibilityFn
    optimize: OptimizeFn


_DECLARATION_LINE = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?(?:"
    + "|".join(DECLARATION_KEYWORDS)
    + r")\b"
)


def is_declaration_line(line: str) -> bool:
    return bool(_DECLARATION_LINE.match(line))


def is_comment_line(line: str) -> bool:
    return line.strip().startswith(COMMENT_PREFIXES)


def _output(
    content: str, env: TechniqueEnv, confidence: float, quality: float
) -> TechniqueOutput:
    return TechniqueOutput(
        content=content,
        estimated_tokens=env.counter.count(content),
        confidence=confidence,
        quality_score=quality,
    )


def _rank_files(
    files: list[OptimizableFile], task: str, env: TechniqueEnv
) -> list[OptimizableFile]:
    """Order files by a light heuristic: path match, class match, primary language."""
    words = extract_task_keywords(task)

    def heuristic(file: OptimizableFile) -> int:
        score = 0
        path = file.path.lower()
        if any(w in path for w in words):
            score += 20
        for name in file.classes:
            if any(w in name.lower() for w in words):
                score += 15
        if env.primary_language and file.language == env.primary_language:
            score += 10
        return score

    return sorted(files, key=heuristic, reverse=True)


def summarize_code(content: str, limit: int = 3) -> str:
    """Join the first declaration or comment lines of a file."""
    picked = [
        line.strip()
        for line in content.splitlines()
        if is_declaration_line(line) or is_comment_line(line)
    ]
    return " | ".join(picked[:limit])


# Extreme compression


def _extreme_compatibility(task_class: TaskClass, complexity: float) -> int:
    return 80


def _extreme_optimize(
    files: list[OptimizableFile],
    task: str,
    constraints: OptimizationConstraints,
    env: TechniqueEnv,
) -> TechniqueOutput:
    parts = [f"Task: {task}\n\n"]
    for file in _rank_files(files, task, env)[:3]:
        parts.append(f"{file.path}:\n")
        if file.classes:
            parts.append(f"Classes: {', '.join(file.classes[:3])}\n")
        if file.functions:
            parts.append(f"Functions: {', '.join(file.functions[:5])}\n")
        if file.content:
            parts.append(f"Code: {file.content[:200]}...\n")
        parts.append("\n")
    return _output("".join(parts), env, 0.85, 0.8)


# Smart summarization


def _smart_compatibility(task_class: TaskClass, complexity: float) -> int:
    if complexity > 20:
        return 90
    if task_class == TaskClass.IMPLEMENTATION:
        return 85
    return 70


def _smart_relevance(file: OptimizableFile, words: list[str], env: TechniqueEnv) -> int:
    score = 0
    if any(w in file.path.lower() for w in words):
        score += 30
    if any(w in c.lower() for c in file.classes for w in words):
        score += 25
    if any(w in f.lower() for f in file.functions for w in words):
        score += 20
    if env.primary_language and file.language == env.primary_language:
        score += 10
    return score


def _smart_blocks(file: OptimizableFile) -> list[str]:
    """Summary blocks for one file, most detailed first."""
    header = f"## {file.path}\nType: {file.kind}, Size: {file.size_bytes} bytes\n"
    symbols = ""
    if file.classes:
        symbols += f"Classes: {', '.join(file.classes)}\n"
    if file.functions:
        more = "..." if len(file.functions) > 8 else ""
        symbols += f"Functions: {', '.join(file.functions[:8])}{more}\n"
    summary = f"Summary: {summarize_code(file.content)}\n" if file.content else ""
    return [header + symbols + summary + "\n", header + symbols + "\n", header + "\n"]


def _smart_select(
    files: list[OptimizableFile],
    task: str,
    constraints: OptimizationConstraints,
    env: TechniqueEnv,
) -> list[str]:
    """
    Split the token budget evenly across the ranked files.

    Each file contributes the most detailed block whose estimate fits its
    share; a file whose bare path block does not fit is skipped.
    """
    if not files:
        return []
    words = extract_task_keywords(task)
    ranked = sorted(files, key=lambda f: _smart_relevance(f, words, env), reverse=True)
    share = constraints.token_budget / len(ranked)
    selected: list[str] = []
    running = 0
    for file in ranked:
        for block in _smart_blocks(file):
            tokens = env.counter.count(block)
            if tokens <= share and running + tokens <= constraints.token_budget:
                selected.append(block)
                running += tokens
                break
    return selected


def _smart_optimize(
    files: list[OptimizableFile],
    task: str,
    constraints: OptimizationConstraints,
    env: TechniqueEnv,
) -> TechniqueOutput:
    parts = [f"Context for: {task}\n\n"]
    parts.extend(_smart_select(files, task, constraints, env))
    return _output("".join(parts), env, 0.9, 0.9)


# Contextual filtering


def _contextual_compatibility(task_class: TaskClass, complexity: float) -> int:
    return 85 if task_class == TaskClass.DEBUG else 75


def _snippets(content: str, words: list[str], limit: int = 10) -> list[str]:
    lines = content.splitlines()
    found: list[str] = []
    for i, line in enumerate(lines):
        lowered = line.lower()
        if any(w in lowered for w in words):
            found.append("\n".join(lines[max(0, i - 1) : i + 2]))
            if len(found) == limit:
                break
    return found


def _contextual_optimize(
    files: list[OptimizableFile],
    task: str,
    constraints: OptimizationConstraints,
    env: TechniqueEnv,
) -> TechniqueOutput:
    words = extract_task_keywords(task)

    def keep(file: OptimizableFile) -> bool:
        if any(file.path in previous for previous in constraints.previous_tasks):
            return True
        if any(w in file.path.lower() for w in words):
            return True
        return any(w in c.lower() for c in file.classes for w in words)

    parts = [f"Filtered context for: {task}\n\n"]
    for file in filter(keep, files):
        parts.append(f"{file.path}:\n")
        if file.content and words:
            parts.append("\n".join(_snippets(file.content, words)))
        parts.append("\n---\n")
    return _output("".join(parts), env, 0.85, 0.85)


# Structural optimization


def _structural_compatibility(task_class: TaskClass, complexity: float) -> int:
    return 90 if task_class == TaskClass.REFACTORING else 70


def _structural_optimize(
    files: list[OptimizableFile],
    task: str,
    constraints: OptimizationConstraints,
    env: TechniqueEnv,
) -> TechniqueOutput:
    parts = [f"Structural view for: {task}\n\n", "## Project Structure\n"]
    for file in files:
        parts.append(f"{file.path} ({file.kind})\n")
        for cls in file.classes[:3]:
            parts.append(f"  └── {cls}\n")
        for func in file.functions[:5]:
            parts.append(f"      └── {func}()\n")
    return _output("".join(parts), env, 0.8, 0.8)


# Semantic compression


def _semantic_compatibility(task_class: TaskClass, complexity: float) -> int:
    return 60


def _semantic_optimize(
    files: list[OptimizableFile],
    task: str,
    constraints: OptimizationConstraints,
    env: TechniqueEnv,
) -> TechniqueOutput:
    all_classes = [c for f in files for c in f.classes]
    all_functions = [fn for f in files for fn in f.functions]
    parts = [
        f"Semantic info for: {task}\n\n",
        f"Classes: {', '.join(all_classes[:10])}\n",
        f"Functions: {', '.join(all_functions[:15])}\n",
    ]

    task_lower = task.lower()
    relevant = [
        f
        for f in files
        if any(s.lower() in task_lower for s in (*f.classes, *f.functions))
    ]
    for file in relevant[:3]:
        parts.append(
            f"\n{file.path}: {', '.join(file.classes)} | {', '.join(file.functions[:5])}\n"
        )
        if file.content:
            parts.append("\n".join(file.content.splitlines()[:5]) + "\n")
    return _output("".join(parts), env, 0.75, 0.75)


# Adaptive caching


def _adaptive_compatibility(task_class: TaskClass, complexity: float) -> int:
    return 50


def _adaptive_optimize(
    files: list[OptimizableFile],
    task: str,
    constraints: OptimizationConstraints,
    env: TechniqueEnv,
) -> TechniqueOutput:
    key = (
        task,
        constraints.token_budget,
        constraints.quality_requirement,
        tuple(f.path for f in files),
    )
    cached = env.memo.get(key)
    if cached is not None:
        return cached
    output = _smart_optimize(files, task, constraints, env)
    env.memo.put(key, output)
    return output


TECHNIQUES: dict[TechniqueName, Technique] = {
    TechniqueName.EXTREME_COMPRESSION: Technique(
        _extreme_compatibility, _extreme_optimize
    ),
    TechniqueName.SMART_SUMMARIZATION: Technique(
        _smart_compatibility, _smart_optimize
    ),
    TechniqueName.CONTEXTUAL_FILTERING: Technique(
        _contextual_compatibility, _contextual_optimize
    ),
    TechniqueName.STRUCTURAL_OPTIMIZATION: Technique(
        _structural_compatibility, _structural_optimize
    ),
    TechniqueName.SEMANTIC_COMPRESSION: Technique(
        _semantic_compatibility, _semantic_optimize
    ),
    TechniqueName.ADAPTIVE_CACHING: Technique(
        _adaptive_compatibility, _adaptive_optimize
    ),
}
