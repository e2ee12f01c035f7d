"""Recommendation confidence scoring."""

from __future__ import annotations

from typing import Optional

COLLABORATIVE_SCALE = 10.0
SIMILAR_USERS_THRESHOLD = 5
SIMILAR_USERS_BONUS = 0.1

# (minimum exclusive rating count, bonus), highest tier first
EXPERIENCE_TIERS = (
    (20, 0.15),
    (10, 0.10),
    (5, 0.05),
)


def experience_bonus(user_rating_count: int) -> float:
    for threshold, bonus in EXPERIENCE_TIERS:
        if user_rating_count > threshold:
            return bonus
    return 0.0


def calculate_confidence_score(
    content_score: float,
    collaborative_score: Optional[float],
    embedding_score: Optional[float],
    user_rating_count: int,
    similar_user_count: int,
) -> float:
    """
    Blend similarity signals and evidence volume into a score in [0, 1].

    Present, positive signals are averaged (the collaborative score is first
    divided by ``COLLABORATIVE_SCALE``). The similar-user and experience
    bonuses are added to that average without being divided.
    """
    total = 0.0
    signals = 0
    bonus = 0.0

    if content_score and content_score > 0:
        total += content_score
        signals += 1

    if collaborative_score is not None and collaborative_score > 0:
        total += collaborative_score / COLLABORATIVE_SCALE
        signals += 1

        if similar_user_count > SIMILAR_USERS_THRESHOLD:
            bonus += SIMILAR_USERS_BONUS

    if embedding_score is not None and embedding_score > 0:
        total += embedding_score
        signals += 1

    bonus += experience_bonus(user_rating_count)

    average = total / signals if signals > 0 else 0.0
    return min(max(average + bonus, 0.0), 1.0)
