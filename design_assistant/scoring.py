"""Label scoring for catalog resolution.

Tiers, highest first:
    1. exact normalized match (fixed score)
    2. label starts with the whole query followed by more words (fixed score)
    3. whole-word token overlap, full coverage or per-token partial credit
    4. substring containment of the full query (stacks with 3)
    5. variant penalties from PENALTY_RULES (only on tiers 3-4)

The fixed tiers are chosen so that tier 1 > tier 2 > the best possible
tier 3 + tier 4 total; only the ordering is relied upon by callers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from .utils import QueryTokens, normalize_text, tokenize_query

EXACT_MATCH_SCORE = 3000
LEADING_PHRASE_SCORE = 2600
FULL_COVERAGE_BONUS = 1800
PER_TOKEN_BONUS = 400
PARTIAL_COVERAGE_CAP = 1400
CONTAINMENT_BONUS = 600


@dataclass(frozen=True)
class PenaltyRule:
    """A variant qualifier that should rank below the base term it decorates."""
    name: str
    label_pattern: re.Pattern
    penalty: int
    # Optional restriction: only penalize when the normalized query matches this.
    query_pattern: Optional[re.Pattern] = None

    def applies(self, tokens: QueryTokens, label_norm: str) -> bool:
        if not self.label_pattern.search(label_norm):
            return False
        # The user asked for the variant itself.
        if self.label_pattern.search(tokens.normalized):
            return False
        if self.query_pattern is not None and not self.query_pattern.search(tokens.normalized):
            return False
        return True


PENALTY_RULES: List[PenaltyRule] = [
    PenaltyRule("multi_variant", re.compile(r"\bmulti\b|multiselect"), 900),
    PenaltyRule("with_qualifier", re.compile(r"\bwith\b"), 200),
    PenaltyRule("compact_variant", re.compile(r"\bcompact\b"), 150),
]


def score_label(
    tokens: Union[QueryTokens, str],
    label: Optional[str],
    rules: Optional[Sequence[PenaltyRule]] = None,
) -> int:
    """Purpose: Score one candidate label against a query.
    Inputs/Outputs: Inputs are QueryTokens (or a raw query), a label, and an optional
        penalty table; output is a non-negative integer score.
    Side Effects / State: None; pure function.
    Dependencies: Uses normalize_text and PENALTY_RULES.
    Failure Modes: Empty label or empty query scores 0.
    If Removed: Page ranking and entity ranking have no ordering signal.
    Testing Notes: Test each tier separately; precedence is the contract, not the numbers.
    """
    # Exact and leading-phrase tiers short-circuit before token rules.
    if isinstance(tokens, str):
        tokens = tokenize_query(tokens)
    label_norm = normalize_text(label)
    if not label_norm or not tokens.normalized:
        return 0
    if label_norm == tokens.normalized:
        return EXACT_MATCH_SCORE
    if label_norm.startswith(tokens.normalized + " "):
        return LEADING_PHRASE_SCORE

    label_words = set(label_norm.split(" "))
    hits = sum(1 for word in tokens.words if word in label_words)
    score = 0
    if tokens.words and hits == len(tokens.words):
        score += FULL_COVERAGE_BONUS
    else:
        score += min(hits * PER_TOKEN_BONUS, PARTIAL_COVERAGE_CAP)

    if tokens.normalized in label_norm:
        score += CONTAINMENT_BONUS

    if score <= 0:
        return 0
    active_rules = PENALTY_RULES if rules is None else rules
    penalty = sum(rule.penalty for rule in active_rules if rule.applies(tokens, label_norm))
    return max(0, score - penalty)
