from foodscan.seed_data import seed_word_cache

FOOD_RECORD = {
    "is_food": True,
    "category": "Fruits",
    "source": "usda",
    "confidence": 0.95,
    "match_score": 0.95,
    "usda": {"fdcId": 1750340, "description": "Apple, raw", "dataType": "Foundation", "foodCategory": "Fruits and Fruit Juices"},
    "usda_result_count": None,
    "nutrients": {"calories": 52},
}


def test_put_and_get_word(word_cache):
    word_cache.put_word(" Apple", FOOD_RECORD)

    cached = word_cache.get_word("APPLE")

    assert cached["isFood"] is True
    assert cached["category"] == "Fruits"
    assert cached["source"] == "cached"
    assert cached["usda"]["fdcId"] == 1750340

    entry = word_cache.get_entry("apple")
    assert entry["nutrients"] == {"calories": 52}
    assert entry["detection_count"] == 1


def test_classification_is_never_overwritten(word_cache):
    word_cache.put_word("apple", FOOD_RECORD)
    word_cache.put_word("apple", {"is_food": False, "source": "usda_no_match", "confidence": 0.7})

    assert word_cache.get_word("apple")["isFood"] is True


def test_feedback_counters(word_cache):
    word_cache.put_word("apple", FOOD_RECORD)
    word_cache.record_feedback("apple", True)
    word_cache.record_feedback("Apple", True)
    word_cache.record_feedback("apple", False)

    entry = word_cache.get_entry("apple")
    assert entry["acceptance_count"] == 2
    assert entry["rejection_count"] == 1
    assert word_cache.get_word("apple")["isFood"] is True


def test_feedback_only_row_is_a_miss_until_classified(word_cache):
    word_cache.record_feedback("kumquat", False)
    assert word_cache.get_word("kumquat") is None

    word_cache.put_word("kumquat", {**FOOD_RECORD, "usda": None})

    assert word_cache.get_word("kumquat")["isFood"] is True
    assert word_cache.get_entry("kumquat")["rejection_count"] == 1


def test_list_words_buckets(word_cache):
    word_cache.put_word("apple", FOOD_RECORD)
    word_cache.put_word("quinoa", {"is_food": True, "category": None, "source": "usda"})
    word_cache.put_word("table", {"is_food": False, "source": "usda_no_match"})
    word_cache.seed_word("produce", False, is_generic=True)
    word_cache.record_feedback("unclassified", True)

    lists = word_cache.list_words()

    assert lists["foodWords"] == {"Fruits": ["apple"], "Other": ["quinoa"]}
    assert lists["nonFoodWords"] == ["table"]
    assert lists["genericWords"] == ["produce"]


def test_ocr_correction_roundtrip(word_cache):
    result = {
        "foodTerms": [{"term": "milk", "confidence": 0.9, "category": "Dairy"}],
        "brandName": "Horizon",
        "productName": None,
        "tokensUsed": 42,
    }
    word_cache.put_ocr_correction("abc123", "x" * 2000, result, "gpt-4o-mini")

    assert word_cache.get_ocr_correction("abc123") == {
        "foodTerms": result["foodTerms"],
        "brandName": "Horizon",
        "productName": None,
    }
    assert len(word_cache.get_ocr_entry("abc123")["ocr_text"]) == 1000
    assert word_cache.get_ocr_correction("missing") is None


def test_seed_word_cache(word_cache):
    stats = seed_word_cache(word_cache)

    assert stats["food"] > 0 and stats["non_food"] > 0 and stats["generic"] > 0
    assert word_cache.get_word("apple")["category"] == "Fruits"
    assert word_cache.get_word("floor")["isFood"] is False
    # First list wins: "vegetable" is a modifier before it is a generic label
    assert word_cache.get_word("vegetable")["isFood"] is True

    lists = word_cache.list_words()
    assert "food" in lists["genericWords"]
    assert "vegetable" not in lists["genericWords"]


def test_seeding_is_idempotent_and_keeps_existing_entries(word_cache):
    word_cache.put_word("apple", {**FOOD_RECORD, "category": "Other"})

    seed_word_cache(word_cache)
    again = seed_word_cache(word_cache)

    assert again == {"food": 0, "modifiers": 0, "non_food": 0, "generic": 0}
    assert word_cache.get_word("apple")["category"] == "Other"
