"""
Seed vocabularies for the word cache.

Words are grouped the way the scanner sees them:
- FOOD_WORDS: known foods per pantry category
- FOOD_MODIFIERS: words that also stand alone as foods ("olive", "oat")
- NON_FOOD_ITEMS: things the camera routinely labels in a kitchen
- GENERIC_LABELS: too vague to become a pantry item
"""

import logging
from typing import Dict

from foodscan.utils import normalize_word
from foodscan.word_cache import WordCache

logger = logging.getLogger(__name__)

FOOD_WORDS = {
    "Fruits": [
        "apple", "banana", "orange", "lemon", "lime", "grape", "strawberry", "blueberry",
        "raspberry", "blackberry", "cherry", "peach", "pear", "plum", "mango", "pineapple",
        "watermelon", "melon", "cantaloupe", "kiwi", "avocado", "coconut", "pomegranate",
        "fig", "date", "papaya", "guava", "passion fruit", "dragon fruit", "grapefruit",
        "cranberry",
    ],
    "Vegetables": [
        "carrot", "broccoli", "cauliflower", "spinach", "lettuce", "kale",
        "cabbage", "celery", "cucumber", "tomato", "potato", "onion", "garlic", "ginger",
        "pepper", "bell pepper", "chili", "jalapeno", "corn", "peas", "beans", "lentils",
        "asparagus", "artichoke", "beet", "turnip", "radish", "zucchini", "squash",
        "pumpkin", "eggplant", "mushroom", "leek", "scallion", "shallot", "bok choy",
    ],
    "Meat": [
        "meat", "beef", "pork", "chicken", "turkey", "lamb", "veal", "bacon", "ham",
        "sausage", "steak", "ground beef",
    ],
    "Seafood": [
        "fish", "salmon", "tuna", "shrimp", "prawn", "lobster", "crab", "oyster",
        "mussel", "clam", "scallop", "seafood",
    ],
    "Dairy": [
        "milk", "cheese", "butter", "cream", "yogurt", "sour cream", "cottage cheese",
        "mozzarella", "cheddar", "parmesan", "brie", "feta", "gouda", "swiss",
        "cream cheese", "goat cheese", "egg",
    ],
    "Bakery": [
        "bread", "bagel", "croissant", "baguette", "roll", "bun", "tortilla",
        "baked goods",
    ],
    "Pantry Staples": [
        "rice", "pasta", "noodle", "cereal", "oat", "oats", "oatmeal", "wheat", "flour",
        "grain", "quinoa", "barley", "couscous", "cracker", "nut", "almond", "walnut",
        "cashew", "peanut", "pistachio", "hazelnut", "sugar", "tofu", "tempeh",
        "chocolate", "candy", "cookie", "chips", "popcorn", "pretzel", "snack",
    ],
    "Condiments": [
        "sauce", "ketchup", "mustard", "mayonnaise", "soy sauce", "vinegar", "oil",
        "olive oil", "dressing", "salsa", "hot sauce", "barbecue", "honey", "syrup",
        "jam", "jelly", "peanut butter", "nutella", "spread", "maple syrup",
        "coconut oil", "vegetable oil", "canola oil", "sesame oil",
    ],
    "Beverages": [
        "juice", "coffee", "tea", "soda", "water", "wine", "beer", "smoothie",
        "orange juice", "apple juice", "grape juice",
    ],
    "Frozen": [
        "ice cream",
    ],
    "Other": [
        "soup", "broth", "stock", "cake", "pie",
    ],
}

FOOD_MODIFIERS = [
    "olive", "coconut", "avocado", "vegetable", "canola", "sesame", "sunflower",
    "maple", "chocolate", "almond", "oat", "soy", "whole", "skim", "lowfat", "nonfat",
    "brown", "red", "chickpea", "white", "instant", "rolled", "steel",
    "ground", "grilled", "roasted", "smoked", "sliced",
    "greek", "ice", "hot",
]

NON_FOOD_ITEMS = [
    # Environment & surfaces
    "floor", "flooring", "tile", "wood", "hardwood", "laminate", "carpet", "rug",
    "wall", "ceiling", "door", "window", "glass", "mirror",
    # Furniture & fixtures
    "cabinet", "cupboard", "drawer", "shelf", "counter", "countertop", "table",
    "chair", "stool", "furniture", "appliance", "refrigerator", "fridge", "oven",
    "stove", "microwave", "dishwasher", "sink",
    # Body parts
    "hand", "finger", "arm", "skin", "face", "person", "human", "body", "thumb",
    "palm", "wrist", "nail", "foot", "leg",
    # Household items
    "bag", "plastic bag", "paper", "towel", "cloth", "fabric", "textile",
    "container", "tray", "rack", "basket", "bin", "trash",
    # Materials & textures
    "metal", "steel", "iron", "aluminum", "plastic", "rubber", "leather",
    "granite", "marble", "concrete", "brick", "stone",
    # Electronics
    "phone", "camera", "screen", "device", "light", "lighting", "lamp",
    # Abstract
    "indoor", "room", "kitchen", "interior", "design", "pattern", "texture",
    "color", "shadow", "reflection", "background",
]

GENERIC_LABELS = [
    # Container/packaging types
    "bottle", "box", "can", "jar", "package",
    "boxed packaged goods", "bottled and jarred packaged goods",
    "bagged packaged goods",
    # Generic categories
    "food", "ingredient", "produce", "grocery",
    "food group", "food storage", "food preservation",
    "frozen food", "natural foods", "convenience food",
    "staple food", "fast food", "comfort food",
    "recipe", "meal", "dish",
    # Kitchenware that sometimes passes
    "dishware", "drinkware", "drink can", "serveware",
    # Attributes, not items
    "organic", "natural", "fresh", "gluten", "free",
    "vegetable", "fruit",
]


def seed_word_cache(cache: WordCache) -> Dict[str, int]:
    """
    Write the seed vocabularies into ``cache``.

    A word lands in the first list it appears in (foods, modifiers,
    non-food, generic). Existing cache entries are left untouched.
    Returns per-list counts of newly written words.
    """
    seen = set()
    stats = {"food": 0, "modifiers": 0, "non_food": 0, "generic": 0}

    def _seed(word, bucket, is_food, category=None, is_generic=False):
        normalized = normalize_word(word)
        if normalized in seen:
            return
        seen.add(normalized)
        if cache.seed_word(normalized, is_food, category, is_generic):
            stats[bucket] += 1

    for category, words in FOOD_WORDS.items():
        for word in words:
            _seed(word, "food", True, category)
    for word in FOOD_MODIFIERS:
        _seed(word, "modifiers", True, "Other")
    for word in NON_FOOD_ITEMS:
        _seed(word, "non_food", False)
    for word in GENERIC_LABELS:
        _seed(word, "generic", False, is_generic=True)

    logger.info("[SEED] Seeded word cache: %s", stats)
    return stats
