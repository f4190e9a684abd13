"""
Pantry food categories and the USDA category lookup table.

USDA FoodData Central reports a free-form ``foodCategory`` per record,
either a legacy SR category ("Dairy and Egg Products") or a branded-food
category ("Cheese"). Both are folded into the small fixed set of pantry
categories below; anything unmapped becomes ``Other``.
"""

from enum import Enum
from typing import Optional


class FoodCategory(str, Enum):
    DAIRY = "Dairy"
    VEGETABLES = "Vegetables"
    FRUITS = "Fruits"
    MEAT = "Meat"
    SEAFOOD = "Seafood"
    PANTRY_STAPLES = "Pantry Staples"
    CONDIMENTS = "Condiments"
    BEVERAGES = "Beverages"
    FROZEN = "Frozen"
    BAKERY = "Bakery"
    OTHER = "Other"


class ClassificationSource(str, Enum):
    """Where a word classification came from."""

    USDA = "usda"
    USDA_NO_MATCH = "usda_no_match"
    USDA_ERROR = "usda_error"
    CACHED = "cached"
    LLM = "llm"
    FALLBACK = "fallback"
    SEED = "seed"


# Order matters: it is the order shown to the LLM.
CATEGORY_HINTS = [
    FoodCategory.FRUITS.value,
    FoodCategory.VEGETABLES.value,
    FoodCategory.MEAT.value,
    FoodCategory.SEAFOOD.value,
    FoodCategory.DAIRY.value,
    FoodCategory.BAKERY.value,
    FoodCategory.PANTRY_STAPLES.value,
    FoodCategory.CONDIMENTS.value,
    FoodCategory.BEVERAGES.value,
    FoodCategory.FROZEN.value,
    FoodCategory.OTHER.value,
]


USDA_CATEGORY_MAP = {
    # SR legacy categories
    "Dairy and Egg Products": "Dairy",
    "Beef Products": "Meat",
    "Pork Products": "Meat",
    "Poultry Products": "Meat",
    "Lamb, Veal, and Game Products": "Meat",
    "Finfish and Shellfish Products": "Seafood",
    "Fruits and Fruit Juices": "Fruits",
    "Vegetables and Vegetable Products": "Vegetables",
    "Baked Products": "Bakery",
    "Cereal Grains and Pasta": "Pantry Staples",
    "Beverages": "Beverages",
    "Fats and Oils": "Condiments",
    "Spices and Herbs": "Condiments",
    "Legumes and Legume Products": "Pantry Staples",
    "Nut and Seed Products": "Pantry Staples",
    "Snacks": "Pantry Staples",
    "Sweets": "Pantry Staples",
    "Soups, Sauces, and Gravies": "Condiments",
    "Baby Foods": "Other",
    "Sausages and Luncheon Meats": "Meat",

    # Branded food categories
    "Pre-Packaged Fruit & Vegetables": "Fruits",
    "Other Grains & Seeds": "Pantry Staples",
    "Frozen Fruits": "Fruits",
    "Frozen Vegetables": "Vegetables",
    "Fresh Vegetables": "Vegetables",
    "Fresh Fruits": "Fruits",
    "Canned Vegetables": "Vegetables",
    "Canned Fruit": "Fruits",
    "Cheese": "Dairy",
    "Milk": "Dairy",
    "Yogurt": "Dairy",
    "Eggs": "Dairy",
    "Butter & Margarine": "Dairy",
    "Bread & Buns": "Bakery",
    "Cookies & Biscuits": "Bakery",
    "Crackers": "Pantry Staples",
    "Pasta & Noodles": "Pantry Staples",
    "Rice": "Pantry Staples",
    "Cereal": "Pantry Staples",
    "Candy": "Pantry Staples",
    "Chocolate": "Pantry Staples",
    "Ice Cream & Frozen Dairy": "Frozen",
    "Frozen Meals": "Frozen",
    "Frozen Pizza": "Frozen",
    "Chips, Pretzels & Snacks": "Pantry Staples",
    "Nuts & Seeds": "Pantry Staples",
    "Dried Fruit": "Pantry Staples",
    "Juice & Juice Drinks": "Beverages",
    "Soft Drinks": "Beverages",
    "Coffee": "Beverages",
    "Tea": "Beverages",
    "Water": "Beverages",
    "Condiments & Sauces": "Condiments",
    "Salad Dressing": "Condiments",
    "Pickles & Relish": "Condiments",
    "Meat": "Meat",
    "Poultry": "Meat",
    "Seafood": "Seafood",
    "Deli Meat": "Meat",
}


def map_usda_category(usda_category: Optional[str]) -> str:
    """Map a USDA category description onto a pantry category name."""
    return USDA_CATEGORY_MAP.get(usda_category or "", FoodCategory.OTHER.value)


def clamp_category(category: Optional[str]) -> str:
    """Collapse anything outside the fixed category set to ``Other``."""
    if category in CATEGORY_HINTS:
        return category
    return FoodCategory.OTHER.value
