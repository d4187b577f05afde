# closelook_assistant/recommendation_merger.py
"""
Recommendation Merger
─────────────────────
Retrieved (scored) candidates come first; products the model mentioned are
appended only when not already present. A deliberately retrieved product is
therefore never displaced by an incidental mention.
"""

from __future__ import annotations

from typing import List, Sequence

from .models import ExtractedRecommendation, ScoredCandidate

MAX_RECOMMENDATIONS = 10
SCORED_REASON = "Matches your search"


def merge_recommendations(
    scored: Sequence[ScoredCandidate],
    extracted: Sequence[ExtractedRecommendation],
    limit: int = MAX_RECOMMENDATIONS,
) -> List[ExtractedRecommendation]:
    merged: List[ExtractedRecommendation] = []
    seen = set()

    for sc in scored:
        p = sc.product
        if p.id in seen:
            continue
        seen.add(p.id)
        merged.append(ExtractedRecommendation(id=p.id, name=p.name, price=p.price, reason=SCORED_REASON))

    for rec in extracted:
        if rec.id in seen:
            continue
        seen.add(rec.id)
        merged.append(rec)

    return merged[:max(0, limit)]
