"""
Tests for the scoring module.

Tests cover:
- extract_task_keywords: stop words, short tokens, de-duplication
- determine_importance / determine_category
- RelevanceScorer: bounds, explanations, keyword and category bonuses,
  framework alignment, determinism and selection
"""

from datetime import timedelta

import pytest

from core.file_io import MockFileReader
from core.scoring import (
    RelevanceScorer,
    ScorerConfig,
    determine_category,
    determine_importance,
    extract_task_keywords,
)
from models import FileKind


@pytest.fixture
def scorer(clock):
    return RelevanceScorer(
        ScorerConfig(language="python", language_weights={"python": 1.0}),
        file_reader=MockFileReader(return_value=""),
        clock=clock,
    )


# ============================================================================
# Tests for helpers
# ============================================================================


@pytest.mark.unit
def test_extract_task_keywords():
    """Stop words, short tokens and punctuation should be dropped."""
    assert extract_task_keywords("Fix the Login bug, and fix it in the UI!") == [
        "fix",
        "login",
        "bug",
    ]


@pytest.mark.unit
def test_extract_task_keywords_empty():
    """An empty task has no keywords."""
    assert extract_task_keywords("") == []


@pytest.mark.unit
@pytest.mark.parametrize(
    "path, kind, expected",
    [
        ("pkg/__init__.py", FileKind.MODULE, "critical"),
        ("src/main.ts", FileKind.SOURCE, "critical"),
        ("app/settings.py", FileKind.SOURCE, "high"),
        ("tsconfig.json", FileKind.CONFIG, "high"),
        ("tests/test_views.py", FileKind.TEST, "low"),
        ("src/views.py", FileKind.SOURCE, "medium"),
    ],
)
def test_determine_importance(path, kind, expected):
    """Importance should follow the file name and kind."""
    assert determine_importance(path, kind) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "path, expected",
    [
        ("app/models/user.py", "model"),
        ("src/components/Button.tsx", "component"),
        ("src/helpers/date.js", "utility"),
        ("src/api/users.ts", "api"),
        ("setup.py", "general"),
    ],
)
def test_determine_category(path, expected):
    """Category should come from the parent directory."""
    assert determine_category(path) == expected


# ============================================================================
# Tests for RelevanceScorer
# ============================================================================


@pytest.mark.unit
def test_auth_file_outranks_unrelated_file(scorer):
    """A login task should rank an auth controller above an unrelated utility."""
    ranked = scorer.score_files(
        ["UnrelatedUtil.swift", "AuthController.swift"], "fix login bug"
    )

    assert [s.file_path for s in ranked] == ["AuthController.swift", "UnrelatedUtil.swift"]
    factors = {r.factor for r in ranked[0].reasons}
    assert "auth_relevance" in factors


@pytest.mark.unit
def test_scores_are_bounded(scorer, snapshot_factory, descriptor_factory):
    """Scores should stay within [0, 1] even with every bonus active."""
    files = [
        descriptor_factory(path="app/auth/login_views.py", size_bytes=0, complexity=500),
        descriptor_factory(path="docs/readme.md", kind=FileKind.DOCUMENTATION, size_bytes=10**7),
    ]
    snapshot = snapshot_factory(files=files, framework="Django")

    for descriptor in files:
        score = scorer.score_file_relevance(
            descriptor.path, "fix login views auth api test model", snapshot
        )
        assert 0.0 <= score.score <= 1.0


@pytest.mark.unit
def test_every_score_is_explained(scorer, snapshot_factory):
    """Type and language reasons should always be present."""
    snapshot = snapshot_factory()

    score = scorer.score_file_relevance("src/app.py", "anything", snapshot)

    factors = [r.factor for r in score.reasons]
    assert factors[:2] == ["file_type", "language"]
    assert score.metadata.importance == "critical"


@pytest.mark.unit
def test_task_keyword_increases_score(scorer, snapshot_factory, descriptor_factory):
    """A path containing a task keyword should score higher than without it."""
    files = [
        descriptor_factory(path="src/payment.py"),
        descriptor_factory(path="src/shipping.py"),
    ]
    snapshot = snapshot_factory(files=files)

    with_keyword = scorer.score_file_relevance("src/payment.py", "refund payment", snapshot)
    without = scorer.score_file_relevance("src/shipping.py", "refund payment", snapshot)

    assert with_keyword.score > without.score
    assert any(r.factor == "task_keyword" for r in with_keyword.reasons)


@pytest.mark.unit
def test_framework_convention_bonus(scorer, snapshot_factory, descriptor_factory):
    """Conventional framework files should gain a framework reason."""
    files = [descriptor_factory(path="blog/views.py")]
    snapshot = snapshot_factory(files=files, framework="Django")

    score = scorer.score_file_relevance("blog/views.py", "list posts", snapshot)

    assert any(r.factor == "framework_match" for r in score.reasons)


@pytest.mark.unit
def test_freshness_uses_snapshot_time(scorer, snapshot_factory, descriptor_factory, now):
    """Freshness should be measured against the snapshot, not the clock."""
    descriptor = descriptor_factory(last_modified=now - timedelta(days=3))
    snapshot = snapshot_factory(files=[descriptor], captured_at=now)
    scorer.clock.advance(timedelta(days=365))

    score = scorer.score_file_relevance(descriptor.path, "task", snapshot)

    freshness = [r for r in score.reasons if r.factor == "freshness"]
    assert freshness and freshness[0].description == "Modified 3.0 days ago"


@pytest.mark.unit
def test_scoring_is_deterministic(scorer, snapshot_factory, descriptor_factory):
    """Scoring the same snapshot twice should give identical results."""
    files = [descriptor_factory(path=f"src/mod{i}.py", complexity=i) for i in range(5)]
    snapshot = snapshot_factory(files=files)
    paths = [f.path for f in files]

    first = scorer.score_files(paths, "update mod3", snapshot)
    second = scorer.score_files(paths, "update mod3", snapshot)

    assert first == second
    assert first[0].file_path == "src/mod3.py"


@pytest.mark.unit
def test_select_context_files_limits_results(scorer, snapshot_factory, descriptor_factory):
    """Selection should honor max_files and keep the best scores."""
    files = [descriptor_factory(path=f"src/file{i}.py") for i in range(8)]
    snapshot = snapshot_factory(files=files)

    selected = scorer.select_context_files(
        [f.path for f in files], "task", snapshot, max_files=3
    )

    assert len(selected) == 3
    assert all(s.score > 0.1 for s in selected)
    assert [s.score for s in selected] == sorted((s.score for s in selected), reverse=True)


@pytest.mark.mock
def test_unreadable_file_scores_with_neutral_metadata(clock, mocker):
    """Files missing from the snapshot should fall back to stat and the reader."""
    reader = MockFileReader(return_value="if a:\n    pass\nfor x in y:\n    pass\n")
    scorer = RelevanceScorer(ScorerConfig(language="python"), file_reader=reader, clock=clock)
    stat = mocker.patch("core.scoring.Path.stat")
    stat.return_value = mocker.Mock(st_size=400, st_mtime=clock.now.timestamp())

    score = scorer.score_file_relevance("src/loop.py", "task")

    assert score.metadata.size_bytes == 400
    assert score.metadata.complexity == 3
    assert score.metadata.language == "python"
