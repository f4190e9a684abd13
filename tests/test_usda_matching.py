import sqlite3

import pytest

from foodscan import config, usda
from foodscan.categories import ClassificationSource
from foodscan.usda import MATCH_THRESHOLD, classify_with_usda, classify_words, find_best_usda_match

from conftest import FakeUsdaResponse, usda_foods


def _foods(*descriptions):
    return usda_foods(*descriptions)["foods"]


@pytest.fixture
def usda_key(monkeypatch):
    monkeypatch.setattr(config, "USDA_API_KEY", "test-key")


@pytest.fixture
def usda_search(monkeypatch, usda_key):
    """Route USDA searches to a per-test response; records queried words."""
    state = {"response": FakeUsdaResponse(payload={"foods": []}), "queries": []}

    def _search(word, api_key, session=None):
        state["queries"].append(word)
        return state["response"]

    monkeypatch.setattr(usda, "search_usda", _search)
    return state


# =============================================================================
# Best-match scoring
# =============================================================================

@pytest.mark.parametrize(
    "word, descriptions, expected_score",
    [
        ("apple", ["Apple"], 1.0),
        ("apple", ["Apple, raw"], 0.95),
        ("apple", ["Apple juice, canned"], 0.95),
        ("apples", ["Apple, raw"], 0.85),
        ("tomato", ["Tomatoes, red, ripe"], 0.85),
        ("straw", ["Strawberries, raw"], 0.7),
    ],
)
def test_find_best_usda_match_scores(word, descriptions, expected_score):
    match, score = find_best_usda_match(word, _foods(*descriptions))
    assert match is not None
    assert score == pytest.approx(expected_score)


def test_modifier_word_does_not_match_primary_food():
    match, score = find_best_usda_match("brown", _foods("Rice, brown, long-grain"))
    assert match is None
    assert score == 0


def test_short_prefix_is_not_a_match():
    match, _ = find_best_usda_match("pea", _foods("Peanuts, all types, raw"))
    assert match is None


def test_highest_scoring_candidate_wins():
    foods = _foods("Milk, whole", "Rice, brown", "Apple, raw", "Apple")
    match, score = find_best_usda_match("Apple", foods)
    assert match["description"] == "Apple"
    assert score == 1.0


# =============================================================================
# classify_with_usda
# =============================================================================

def test_short_word_rejected_without_lookup(usda_search):
    result = classify_with_usda("ok")
    assert result.is_food is False
    assert result.source == ClassificationSource.USDA_NO_MATCH
    assert result.confidence == 0.8
    assert usda_search["queries"] == []


def test_missing_api_key_is_transient_error(monkeypatch):
    monkeypatch.setattr(config, "USDA_API_KEY", None)
    result = classify_with_usda("apple")
    assert result.is_error
    assert result.error == usda.ERROR_API_KEY_MISSING
    assert result.is_food is None


def test_rate_limit_is_transient_error(usda_search):
    usda_search["response"] = FakeUsdaResponse(status_code=429)
    result = classify_with_usda("apple")
    assert result.is_error
    assert result.error == usda.ERROR_RATE_LIMITED


def test_server_error_is_transient_error(usda_search):
    usda_search["response"] = FakeUsdaResponse(status_code=503)
    result = classify_with_usda("apple")
    assert result.is_error
    assert "503" in result.error


def test_no_results_is_non_food(usda_search):
    usda_search["response"] = FakeUsdaResponse(payload={"totalHits": 0, "foods": []})
    result = classify_with_usda("spatula")
    assert result.is_food is False
    assert result.confidence == 0.7
    assert result.source == ClassificationSource.USDA_NO_MATCH


def test_modifier_only_results_are_non_food(usda_search):
    usda_search["response"] = FakeUsdaResponse(payload=usda_foods("Rice, brown, long-grain"))
    result = classify_with_usda("brown")
    assert result.is_food is False
    assert result.confidence == pytest.approx(0.9)
    assert result.result_count == 1


def test_good_match_is_food_with_category_and_nutrients(usda_search):
    payload = usda_foods("Apple, raw")
    payload["foods"][0]["foodNutrients"] = [
        {"nutrientId": 1008, "value": 52},
        {"nutrientId": 1003, "value": 0.3},
        {"nutrientId": 9999, "value": 1},
    ]
    usda_search["response"] = FakeUsdaResponse(payload=payload)

    result = classify_with_usda("Apple")

    assert result.is_food is True
    assert result.source == ClassificationSource.USDA
    assert result.category == "Fruits"
    assert result.confidence == pytest.approx(0.95)
    assert result.usda.fdc_id == 1000
    assert result.nutrients == {"calories": 52, "protein": 0.3}
    assert usda_search["queries"] == ["apple"]


def test_unmapped_usda_category_defaults_to_other(usda_search):
    usda_search["response"] = FakeUsdaResponse(payload=usda_foods("Quinoa, cooked", category="Mystery Foods"))
    result = classify_with_usda("quinoa")
    assert result.category == "Other"


def test_score_exactly_at_threshold_is_food(usda_search, monkeypatch):
    usda_search["response"] = FakeUsdaResponse(payload=usda_foods("Kale, raw", category="Vegetables and Vegetable Products"))
    candidate = usda_search["response"].json()["foods"][0]
    monkeypatch.setattr(usda, "find_best_usda_match", lambda word, foods: (candidate, MATCH_THRESHOLD))

    result = classify_with_usda("kale")

    assert result.is_food is True
    assert result.confidence == MATCH_THRESHOLD
    assert result.category == "Vegetables"


def test_score_below_threshold_is_non_food(usda_search, monkeypatch):
    usda_search["response"] = FakeUsdaResponse(payload=usda_foods("Kale, raw"))
    candidate = usda_search["response"].json()["foods"][0]
    monkeypatch.setattr(usda, "find_best_usda_match", lambda word, foods: (candidate, 0.5))

    result = classify_with_usda("kale")

    assert result.is_food is False
    assert result.confidence == pytest.approx(0.8)


# =============================================================================
# Batch classification with caching
# =============================================================================

def test_classifications_are_cached_and_served_from_cache(usda_search, word_cache):
    usda_search["response"] = FakeUsdaResponse(payload=usda_foods("Apple, raw"))

    first = classify_words(["Apple "], word_cache)
    second = classify_words(["apple"], word_cache)

    assert first.classifications["apple"]["source"] == "usda"
    assert second.classifications["apple"]["source"] == "cached"
    assert second.classifications["apple"]["isFood"] is True
    assert second.classifications["apple"]["usda"]["description"] == "Apple, raw"
    assert second.stats["cached"] == 1
    assert usda_search["queries"] == ["apple"]


def test_non_matches_are_cached(usda_search, word_cache):
    classify_words(["spatula"], word_cache)
    assert word_cache.get_word("spatula")["isFood"] is False


def test_transient_errors_are_not_cached(usda_search, word_cache):
    usda_search["response"] = FakeUsdaResponse(status_code=429)

    result = classify_words(["apple"], word_cache)

    assert result.classifications["apple"]["source"] == "usda_error"
    assert result.stats["usda_error"] == 1
    assert word_cache.get_entry("apple") is None

    usda_search["response"] = FakeUsdaResponse(payload=usda_foods("Apple, raw"))
    retried = classify_words(["apple"], word_cache)
    assert retried.classifications["apple"]["isFood"] is True


def test_batch_is_capped(usda_search, word_cache):
    words = [f"word{i}" for i in range(25)]
    result = classify_words(words, word_cache, max_words=20)
    assert len(result.classifications) == 20
    assert len(usda_search["queries"]) == 20


def test_cache_failures_do_not_fail_the_batch(usda_search, word_cache, monkeypatch):
    def _locked(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(word_cache, "get_word", _locked)
    monkeypatch.setattr(word_cache, "put_word", _locked)
    usda_search["response"] = FakeUsdaResponse(payload=usda_foods("Apple, raw"))

    result = classify_words(["apple", "spatula"], word_cache)

    assert result.classifications["apple"]["isFood"] is True
    assert result.classifications["apple"]["source"] == "usda"
    assert result.classifications["spatula"]["isFood"] is False
    assert usda_search["queries"] == ["apple", "spatula"]
