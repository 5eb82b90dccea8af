"""
Secondary compression: a deterministic last-resort size reduction.

Applied when a technique's output still exceeds a hard token target. Lines are
split into mandatory ones (first, last, declarations, comments), which are
always kept, and the rest, which are ranked and admitted greedily while the
estimated size stays within the target. The result keeps the original line
order and is always a subset of the input lines, so it is never larger than
the input.
"""

from core.models import TechniqueOutput
from core.scoring import extract_task_keywords
from core.techniques import is_comment_line, is_declaration_line
from core.tokens import TokenCounter

# Confidence multiplier applied to compressed output.
SECONDARY_CONFIDENCE_FACTOR = 0.8


def _is_mandatory(index: int, line: str, last_index: int) -> bool:
    return (
        index == 0
        or index == last_index
        or is_declaration_line(line)
        or is_comment_line(line)
    )


def secondary_compress(
    output: TechniqueOutput,
    target_tokens: int,
    counter: TokenCounter,
    task: str = "",
) -> TechniqueOutput:
    """
    Shrink a technique output towards target_tokens.

    Args:
        output: The primary technique output.
        target_tokens: Token budget the optional lines are fitted into.
        counter: Token estimator.
        task: Task description; lines mentioning its keywords are admitted first.

    Returns:
        A new output whose content is an order-preserving subset of the input
        lines, with confidence multiplied by SECONDARY_CONFIDENCE_FACTOR.
        Mandatory lines can keep the result above target_tokens.
    """
    lines = output.content.split("\n")
    last_index = len(lines) - 1
    words = extract_task_keywords(task)

    kept: set[int] = set()
    used = 0
    optional: list[tuple[int, int, int]] = []
    for i, line in enumerate(lines):
        # A line costs its own tokens plus one for the newline joining it
        if _is_mandatory(i, line, last_index):
            kept.add(i)
            used += counter.count(line) + 1
        else:
            hits = sum(1 for w in words if w in line.lower())
            optional.append((-hits, 0 if line.strip() else 1, i))

    for _, _, i in sorted(optional):
        cost = counter.count(lines[i]) + 1
        if used + cost <= target_tokens:
            kept.add(i)
            used += cost

    content = "\n".join(lines[i] for i in sorted(kept))
    return TechniqueOutput(
        content=content,
        estimated_tokens=counter.count(content),
        confidence=output.confidence * SECONDARY_CONFIDENCE_FACTOR,
        quality_score=output.quality_score,
    )
