"""
Built-in category data for when stored catalogs are unavailable.

DEFAULT_CATEGORIES is the normal starting catalog. EMERGENCY_CATALOG is the
single category the store falls back to when even the defaults cannot be
used, and EMERGENCY_CATEGORIES / EMERGENCY_LETTERS / EMERGENCY_ROUND_CONFIG
back the basic round generator.
"""

import copy
from typing import Any, Dict, List

DEFAULT_CATEGORIES: List[Dict[str, Any]] = [
    {
        "id": "animals",
        "name": "Animals",
        "difficulty": 2,
        "words": ["cat", "dog", "bird", "fish", "lion", "tiger", "elephant", "monkey",
                  "rabbit", "horse", "cow", "pig", "sheep", "goat", "duck", "chicken",
                  "bear", "wolf", "fox", "deer", "squirrel", "mouse", "rat", "hamster"],
        "letter_compatibility": ["A", "B", "C", "D", "E", "F", "G", "H", "L", "M", "P", "R", "S", "T", "W"],
        "tags": ["nature", "living", "common"],
        "theme": "Living creatures and pets",
        "estimated_words": 50,
        "average_word_length": 5,
    },
    {
        "id": "foods",
        "name": "Foods",
        "difficulty": 1,
        "words": ["apple", "banana", "bread", "cheese", "pizza", "pasta", "rice", "chicken",
                  "beef", "fish", "egg", "milk", "butter", "sugar", "salt", "pepper",
                  "tomato", "potato", "carrot", "onion", "garlic", "lemon", "orange", "grape"],
        "letter_compatibility": ["A", "B", "C", "E", "F", "G", "L", "M", "O", "P", "R", "S", "T"],
        "tags": ["daily", "common", "consumable"],
        "theme": "Food and beverages",
        "estimated_words": 75,
        "average_word_length": 6,
    },
    {
        "id": "colors",
        "name": "Colors",
        "difficulty": 1,
        "words": ["red", "blue", "green", "yellow", "orange", "purple", "pink", "brown",
                  "black", "white", "gray", "violet", "indigo", "cyan", "magenta", "turquoise",
                  "crimson", "azure", "emerald", "gold", "silver", "bronze", "maroon", "navy"],
        "letter_compatibility": ["A", "B", "C", "E", "G", "I", "M", "O", "P", "R", "T", "V", "W", "Y"],
        "tags": ["visual", "descriptive", "art"],
        "theme": "Colors and shades",
        "estimated_words": 40,
        "average_word_length": 5,
    },
    {
        "id": "countries",
        "name": "Countries",
        "difficulty": 3,
        "words": ["america", "canada", "france", "germany", "italy", "spain", "japan", "china",
                  "india", "brazil", "australia", "russia", "mexico", "egypt", "greece", "turkey",
                  "sweden", "norway", "poland", "ireland", "portugal", "argentina", "chile", "peru"],
        "letter_compatibility": ["A", "B", "C", "E", "F", "G", "I", "J", "M", "P", "R", "S", "T"],
        "tags": ["geography", "world", "knowledge"],
        "theme": "Countries and nations",
        "estimated_words": 60,
        "average_word_length": 7,
    },
    {
        "id": "sports",
        "name": "Sports",
        "difficulty": 2,
        "words": ["football", "basketball", "baseball", "tennis", "golf", "swimming", "running", "cycling",
                  "soccer", "hockey", "boxing", "wrestling", "volleyball", "badminton", "cricket", "rugby",
                  "skiing", "surfing", "climbing", "fishing", "hiking", "dancing", "gymnastics", "archery"],
        "letter_compatibility": ["A", "B", "C", "F", "G", "H", "R", "S", "T", "V", "W"],
        "tags": ["activity", "physical", "competition"],
        "theme": "Sports and physical activities",
        "estimated_words": 45,
        "average_word_length": 7,
    },
    {
        "id": "professions",
        "name": "Professions",
        "difficulty": 3,
        "words": ["doctor", "teacher", "engineer", "lawyer", "nurse", "pilot", "chef", "artist",
                  "writer", "musician", "actor", "dancer", "photographer", "designer", "architect", "scientist",
                  "programmer", "accountant", "manager", "salesperson", "mechanic", "electrician", "plumber", "carpenter"],
        "letter_compatibility": ["A", "C", "D", "E", "L", "M", "N", "P", "S", "T", "W"],
        "tags": ["work", "career", "society"],
        "theme": "Jobs and careers",
        "estimated_words": 55,
        "average_word_length": 8,
    },
    {
        "id": "technology",
        "name": "Technology",
        "difficulty": 4,
        "words": ["computer", "phone", "internet", "software", "hardware", "website", "application", "database",
                  "algorithm", "programming", "artificial", "intelligence", "robot", "automation", "digital", "virtual",
                  "blockchain", "cryptocurrency", "machine", "learning", "network", "security", "encryption", "server"],
        "letter_compatibility": ["A", "C", "D", "H", "I", "M", "N", "P", "R", "S", "T", "V", "W"],
        "tags": ["modern", "complex", "innovation"],
        "theme": "Technology and computing",
        "estimated_words": 35,
        "average_word_length": 9,
    },
    {
        "id": "nature",
        "name": "Nature",
        "difficulty": 2,
        "words": ["tree", "flower", "grass", "mountain", "river", "ocean", "forest", "desert",
                  "rain", "snow", "wind", "storm", "thunder", "lightning", "rainbow", "sunset",
                  "sunrise", "cloud", "star", "moon", "sun", "earth", "rock", "stone"],
        "letter_compatibility": ["C", "F", "G", "M", "N", "O", "R", "S", "T", "W"],
        "tags": ["environment", "outdoor", "natural"],
        "theme": "Natural world and weather",
        "estimated_words": 65,
        "average_word_length": 6,
    },
]

EMERGENCY_CATALOG: List[Dict[str, Any]] = [
    {
        "id": "basic",
        "name": "Basic Words",
        "difficulty": 1,
        "words": ["cat", "dog", "sun", "moon", "tree", "car", "book", "home"],
        "letter_compatibility": ["A", "B", "C", "D", "H", "M", "S", "T"],
        "tags": ["fallback"],
        "theme": "Emergency fallback category",
        "estimated_words": 8,
        "average_word_length": 4,
    },
]

EMERGENCY_CATEGORIES: List[Dict[str, Any]] = [
    {
        "id": "emergency-basic",
        "name": "Basic Words",
        "difficulty": 1,
        "words": ["cat", "dog", "sun", "car", "book", "home", "tree", "ball"],
        "letter_compatibility": ["A", "B", "C", "D", "H", "S", "T"],
        "tags": ["emergency"],
        "theme": "Emergency basic category",
        "estimated_words": 8,
        "average_word_length": 4,
    },
    {
        "id": "emergency-animals",
        "name": "Animals",
        "difficulty": 1,
        "words": ["cat", "dog", "bird", "fish", "cow", "pig"],
        "letter_compatibility": ["B", "C", "D", "F", "P"],
        "tags": ["emergency", "animals"],
        "theme": "Emergency animal category",
        "estimated_words": 6,
        "average_word_length": 4,
    },
]

EMERGENCY_LETTERS: List[str] = ["A", "B", "C", "D", "E", "S", "T"]

EMERGENCY_ROUND_CONFIG: Dict[str, Any] = {
    "duration": 60,
    "difficulty": 1,
    "target_word_count": 5,
    "scoring": {
        "base_points": 10,
        "length_multiplier": 1,
        "difficulty_bonus": 0,
    },
}

GAME_SETTINGS: Dict[str, bool] = {
    "minimal_mode": True,
    "reduced_animations": True,
    "basic_ui": True,
    "offline_mode": True,
}


def get_default_categories() -> List[Dict[str, Any]]:
    """Fresh copy of the default catalog, safe for callers to mutate."""
    return copy.deepcopy(DEFAULT_CATEGORIES)


def get_emergency_catalog() -> List[Dict[str, Any]]:
    return copy.deepcopy(EMERGENCY_CATALOG)
