"""
Variant Matcher - Candidate Scoring and Selection

Scores catalog variants against a parsed line item with a per-vendor table of
weighted attribute rules and picks the best one:
- Each rule adds its weight when the item and candidate values agree
- The strictly highest score wins; ties keep the earlier candidate
- When no candidate scores at all, the first candidate is returned with a
  nominal score of 10 (any catalog hit says more than none)
- validated = score >= min_confidence

Pure functions only; nothing here touches the network or logs.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from vendor_orders.models import CandidateVariant, LineItem, MatchResult

FALLBACK_SCORE = 10

REASON_VALIDATED = "Cross-reference successful"
REASON_LOW_CONFIDENCE = "Insufficient matches - using best available variant"
REASON_FIRST_CANDIDATE = "No attribute agreed - using first catalog variant"
REASON_NO_CANDIDATES = "No catalog variants to match"


@dataclass(frozen=True)
class ScoringRule:
    """
    One weighted attribute comparison.

    mode "exact" compares case/whitespace-normalized text; "numeric" compares
    the leading integers ("053" == "53", "54mm" == "54"). partial_weight, when
    set, is awarded instead of weight if one normalized value contains the
    other but they are not equal.
    """
    attribute: str
    item_field: str
    candidate_field: str
    weight: int
    mode: str = "exact"
    partial_weight: int = 0


def normalize_value(value: Any) -> str:
    return " ".join(str(value).split()).casefold() if value is not None else ""


def leading_int(value: Any) -> Optional[int]:
    match = re.match(r"\s*0*(\d+)", str(value)) if value is not None else None
    return int(match.group(1)) if match else None


def max_score(table: list[ScoringRule]) -> int:
    """Upper bound of any candidate's score under a table."""
    return sum(rule.weight for rule in table)


def score_rule(rule: ScoringRule, item_value: Any, candidate_value: Any) -> int:
    if rule.mode == "numeric":
        left, right = leading_int(item_value), leading_int(candidate_value)
        return rule.weight if left is not None and left == right else 0

    left, right = normalize_value(item_value), normalize_value(candidate_value)
    if not left or not right:
        return 0
    if left == right:
        return rule.weight
    if rule.partial_weight and (left in right or right in left):
        return rule.partial_weight
    return 0


def score_candidate(
    item: LineItem, candidate: CandidateVariant, table: list[ScoringRule]
) -> tuple[int, dict[str, bool]]:
    """Sum of agreeing rule weights plus the per-attribute breakdown."""
    score = 0
    matches = {}
    for rule in table:
        points = score_rule(
            rule, getattr(item, rule.item_field, None), getattr(candidate, rule.candidate_field, None)
        )
        # Several rules may feed one attribute; any agreement marks it matched
        matches[rule.attribute] = matches.get(rule.attribute, False) or points > 0
        score += points
    return score, matches


def match_variant(
    item: LineItem,
    candidates: list[CandidateVariant],
    table: list[ScoringRule],
    min_confidence: int = 50,
) -> MatchResult:
    """
    Select the best candidate for an item.

    Args:
        item: Parsed line item
        candidates: Catalog variants in the order the vendor returned them
        table: Vendor scoring rules
        min_confidence: Validation threshold

    Returns:
        MatchResult (variant None only when there are no candidates)
    """
    if not candidates:
        return MatchResult(variant=None, confidence=0, validated=False, reason=REASON_NO_CANDIDATES)

    best_index = None
    best_score = 0
    best_matches: dict[str, bool] = {}

    for index, candidate in enumerate(candidates):
        score, matches = score_candidate(item, candidate, table)
        if score > best_score:
            best_index, best_score, best_matches = index, score, matches

    if best_index is None:
        return MatchResult(
            variant=candidates[0],
            confidence=FALLBACK_SCORE,
            validated=FALLBACK_SCORE >= min_confidence,
            reason=REASON_FIRST_CANDIDATE,
            matches={rule.attribute: False for rule in table},
            candidate_index=0,
        )

    validated = best_score >= min_confidence
    return MatchResult(
        variant=candidates[best_index],
        confidence=best_score,
        validated=validated,
        reason=REASON_VALIDATED if validated else REASON_LOW_CONFIDENCE,
        matches=best_matches,
        candidate_index=best_index,
    )
