"""Tests for catalog variant scoring and selection.

Covers:
- Weighted rule scoring (exact, numeric, partial)
- Strict-maximum selection with stable ties
- First-candidate fallback when nothing agrees
- Validation threshold
"""

import pytest

from vendor_orders.enrichment.europa import EUROPA_SCORING
from vendor_orders.enrichment.marchon import MARCHON_SCORING
from vendor_orders.models import CandidateVariant
from vendor_orders.variant_matcher import (
    FALLBACK_SCORE,
    REASON_FIRST_CANDIDATE,
    REASON_LOW_CONFIDENCE,
    REASON_NO_CANDIDATES,
    REASON_VALIDATED,
    ScoringRule,
    leading_int,
    match_variant,
    max_score,
    score_candidate,
    score_rule,
)


@pytest.fixture
def europa_candidates():
    return [
        CandidateVariant(upc="842868104252", color_code="2", eye_size="53"),
        CandidateVariant(upc="842868104153", color_code="1", eye_size="53"),
        CandidateVariant(upc="842868104155", color_code="1", eye_size="55"),
    ]


# ============================================================================
# RULE SCORING
# ============================================================================


@pytest.mark.parametrize(
    "value, expected", [("053", 53), ("54mm", 54), (" 18 ", 18), ("", None), (None, None), ("N/A", None)]
)
def test_leading_int(value, expected):
    assert leading_int(value) == expected


def test_numeric_rule_ignores_leading_zeros():
    rule = ScoringRule("colorNo", "color_code", "color_code", 50, mode="numeric")

    assert score_rule(rule, "01", "1") == 50
    assert score_rule(rule, "1", "") == 0


def test_exact_rule_partial_weight():
    rule = ScoringRule("colorName", "color_name", "color_name", 40, partial_weight=20)

    assert score_rule(rule, "Matte  Black", "matte black") == 40
    assert score_rule(rule, "Black/Gunmetal", "Black") == 20
    assert score_rule(rule, "Black", "Tortoise") == 0
    assert score_rule(rule, "", "Black") == 0


def test_score_candidate_breakdown(make_item):
    item = make_item(color_code="001", eye_size="54", bridge="17")
    candidate = CandidateVariant(color_code="001", eye_size="52", bridge="17", temple="140")

    score, matches = score_candidate(item, candidate, MARCHON_SCORING)

    assert score == 60
    assert matches == {"colorCode": True, "eyeSize": False, "bridge": True, "temple": False}


def test_max_score():
    assert max_score(EUROPA_SCORING) == 90
    assert max_score(MARCHON_SCORING) == 100


# ============================================================================
# SELECTION
# ============================================================================


def test_full_agreement_is_validated(make_item, europa_candidates):
    item = make_item(color_code="1", eye_size="53")

    result = match_variant(item, europa_candidates, EUROPA_SCORING)

    assert result.confidence == 90
    assert result.validated is True
    assert result.reason == REASON_VALIDATED
    assert result.candidate_index == 1
    assert result.variant.upc == "842868104153"


def test_selected_score_is_the_maximum(make_item, europa_candidates):
    item = make_item(color_code="1", eye_size="55")

    result = match_variant(item, europa_candidates, EUROPA_SCORING)
    scores = [score_candidate(item, c, EUROPA_SCORING)[0] for c in europa_candidates]

    assert result.confidence == max(scores)
    assert result.variant is europa_candidates[scores.index(max(scores))]


def test_selection_is_deterministic(make_item, europa_candidates):
    item = make_item(color_code="1", eye_size="53")

    results = [match_variant(item, europa_candidates, EUROPA_SCORING) for _ in range(5)]

    assert {r.candidate_index for r in results} == {1}


def test_ties_keep_the_earlier_candidate(make_item, europa_candidates):
    item = make_item(color_code="1")  # Both colour-1 candidates score 50

    result = match_variant(item, europa_candidates, EUROPA_SCORING)

    assert result.confidence == 50
    assert result.candidate_index == 1


def test_no_agreement_falls_back_to_first_candidate(make_item, europa_candidates):
    item = make_item(color_code="9", eye_size="60")

    result = match_variant(item, europa_candidates, EUROPA_SCORING)

    assert result.variant is europa_candidates[0]
    assert result.confidence == FALLBACK_SCORE
    assert result.validated is False
    assert result.reason == REASON_FIRST_CANDIDATE
    assert not any(result.matches.values())


def test_low_confidence_is_not_validated(make_item, europa_candidates):
    item = make_item(color_code="9", eye_size="55")

    result = match_variant(item, europa_candidates, EUROPA_SCORING)

    assert result.confidence == 40
    assert result.validated is False
    assert result.reason == REASON_LOW_CONFIDENCE
    assert result.variant.upc == "842868104155"


def test_threshold_is_inclusive(make_item, europa_candidates):
    item = make_item(color_code="1")

    assert match_variant(item, europa_candidates, EUROPA_SCORING, min_confidence=50).validated
    assert not match_variant(item, europa_candidates, EUROPA_SCORING, min_confidence=51).validated


def test_empty_candidates(make_item):
    result = match_variant(make_item(), [], EUROPA_SCORING)

    assert result.variant is None
    assert result.confidence == 0
    assert result.validated is False
    assert result.reason == REASON_NO_CANDIDATES
