import itertools

import pytest

from anime_embeddings.embeddings.confidence import calculate_confidence_score, experience_bonus
from anime_embeddings.service import SemanticEngine


def test_no_signals_is_zero():
    assert calculate_confidence_score(0.0, None, None, 0, 0) == 0.0


def test_single_content_signal():
    assert calculate_confidence_score(0.8, None, None, 0, 0) == pytest.approx(0.8)


def test_signals_are_averaged_with_collaborative_normalized():
    score = calculate_confidence_score(0.6, 8.0, 0.4, 0, 0)
    assert score == pytest.approx((0.6 + 0.8 + 0.4) / 3)


def test_similar_user_bonus_requires_collaborative_signal():
    with_cf = calculate_confidence_score(0.5, 5.0, None, 0, 6)
    without_cf = calculate_confidence_score(0.5, None, None, 0, 10)

    assert with_cf == pytest.approx(0.5 + 0.1)
    assert without_cf == pytest.approx(0.5)


def test_similar_user_bonus_threshold_is_exclusive():
    assert calculate_confidence_score(0.5, 5.0, None, 0, 5) == pytest.approx(0.5)


def test_bonuses_are_not_divided_by_signal_count():
    score = calculate_confidence_score(0.2, 2.0, 0.2, 21, 6)
    assert score == pytest.approx(0.2 + 0.1 + 0.15)


@pytest.mark.parametrize(
    "ratings, bonus",
    [(0, 0.0), (5, 0.0), (6, 0.05), (10, 0.05), (11, 0.10), (20, 0.10), (21, 0.15), (500, 0.15)],
)
def test_experience_tiers(ratings, bonus):
    assert experience_bonus(ratings) == pytest.approx(bonus)
    assert calculate_confidence_score(0.5, None, None, ratings, 0) == pytest.approx(0.5 + bonus)


def test_experience_bonus_applies_without_signals():
    assert calculate_confidence_score(0.0, None, None, 25, 0) == pytest.approx(0.15)


def test_non_positive_signals_are_ignored():
    assert calculate_confidence_score(-0.5, 0.0, -1.0, 0, 0) == 0.0
    assert calculate_confidence_score(0.9, -3.0, 0.0, 0, 9) == pytest.approx(0.9)


def test_clamped_to_one():
    assert calculate_confidence_score(1.0, 10.0, 1.0, 50, 50) == 1.0


def test_always_in_unit_interval():
    contents = [-1.0, 0.0, 0.3, 1.0, 2.0]
    collaboratives = [None, -5.0, 0.0, 4.0, 10.0, 50.0]
    embeddings = [None, -0.2, 0.0, 0.7, 1.5]
    counts = [0, 6, 11, 21]

    for content, cf, emb, ratings, users in itertools.product(
        contents, collaboratives, embeddings, counts, counts
    ):
        score = calculate_confidence_score(content, cf, emb, ratings, users)
        assert 0.0 <= score <= 1.0


def test_engine_exposes_confidence_score():
    assert SemanticEngine.calculate_confidence_score(0.6, 8.0, 0.4, 0, 0) == pytest.approx(0.6)
