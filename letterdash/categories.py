"""
Category catalog: loading, validation, and cached lookups.
"""

import logging
import random
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator

from .cache import CategoryCache
from .config import CacheConfig
from .degradation import DegradationType
from .fallback_data import get_default_categories, get_emergency_catalog
from .models import Category

logger = logging.getLogger(__name__)

CATEGORIES_KEY = 'categories'


class CategoryRecord(BaseModel):
    """Shape every persisted category must have."""

    model_config = ConfigDict(strict=True, extra='allow')

    id: str
    name: str
    difficulty: float
    words: List[str]
    letter_compatibility: List[str]
    tags: List[str]

    @field_validator('id', 'name')
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator('difficulty')
    def difficulty_in_range(cls, v):
        if v < 1 or v > 5:
            raise ValueError(f"difficulty {v} outside 1..5")
        return v


_CATALOG = TypeAdapter(List[CategoryRecord])


def validate_categories_data(data: Any) -> bool:
    """All-or-nothing: one bad entry rejects the whole catalog."""
    try:
        _CATALOG.validate_python(data)
        return True
    except ValidationError:
        return False


class NullCategoryStore:
    """Stands in when no catalog is available; every lookup comes back empty."""

    available = False

    def init(self) -> bool:
        return True

    def get_by_id(self, category_id) -> Optional[Category]:
        return None

    def get_random(self) -> Optional[Category]:
        return None

    def get_all(self) -> List[Category]:
        return []

    def get_by_difficulty(self, difficulty) -> List[Category]:
        return []

    def get_by_difficulty_range(self, min_difficulty, max_difficulty) -> List[Category]:
        return []

    def get_by_letter(self, letter) -> List[Category]:
        return []

    def get_by_tag(self, tag) -> List[Category]:
        return []

    def search(self, term) -> List[Category]:
        return []

    def get_stats(self) -> Dict[str, Any]:
        return {'total_categories': 0, 'initialized': False, 'available': False}

    def destroy(self) -> None:
        pass


class CategoryStore:
    available = True

    def __init__(self, storage=None, error_tracker=None, degradation=None,
                 cache_config: Optional[CacheConfig] = None,
                 rng: Optional[random.Random] = None):
        self.storage = storage
        self.error_tracker = error_tracker
        self.degradation = degradation
        self.rng = rng or random.Random()
        self.categories: List[Category] = []
        self.categories_by_id: Dict[str, Category] = {}
        self.cache = CategoryCache.from_config(cache_config)
        self.initialized = False
        self.source = None
        self.stats = {
            'total_categories': 0,
            'load_time_ms': 0.0,
            'last_access': None,
        }

        if degradation is not None:
            degradation.register_recovery_probe(DegradationType.CATEGORY_DATA_MISSING, self._recover_categories)
            degradation.register_recovery_probe(DegradationType.WORD_DATA_MISSING, self._recover_words)

    def init(self) -> bool:
        """Load the catalog; returns False when only the emergency catalog could be used."""
        if self.initialized:
            return True
        start = time.perf_counter()
        logger.info("CategoryStore: Initializing category system")

        categories, source = self._load_catalog(track=True)
        self._set_categories(categories, source)
        self.stats['load_time_ms'] = (time.perf_counter() - start) * 1000
        self.initialized = True

        if source == 'emergency':
            self._degrade(DegradationType.CATEGORY_DATA_MISSING, 'Category catalog unavailable')
        if not any(c.words for c in self.categories):
            self._degrade(DegradationType.WORD_DATA_MISSING, 'No category has any words')

        logger.info(f"CategoryStore: Initialized with {len(self.categories)} categories "
                    f"from {source} in {self.stats['load_time_ms']:.2f}ms")
        return source != 'emergency'

    def _ensure_initialized(self) -> None:
        if not self.initialized:
            self.init()
        self.stats['last_access'] = time.time()

    def _load_catalog(self, track: bool) -> Tuple[List[Category], str]:
        data, source = None, 'default'

        if self.storage is not None:
            has_result = self.storage.has(CATEGORIES_KEY)
            result = self.storage.get(CATEGORIES_KEY) if has_result.ok and has_result.value else has_result
            if not result.ok:
                if track:
                    self._track('init', RuntimeError(f"Category storage failed: {result.message}"),
                                critical=True, fallback=True)
                return self._emergency_categories(), 'emergency'
            if has_result.value:
                if validate_categories_data(result.value):
                    data, source = result.value, 'storage'
                    logger.info(f"CategoryStore: Loaded {len(data)} categories from storage")
                elif track:
                    self._track('validateCategories', ValueError('Invalid categories data in storage'),
                                fallback=True)

        if data is None:
            data = get_default_categories()

        try:
            _CATALOG.validate_python(data)
            return [Category.from_dict(c) for c in data], source
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            if track:
                self._track('validateCategories', ValueError(f"Invalid category catalog: {e}"), fallback=True)
            return self._emergency_categories(), 'emergency'

    def _emergency_categories(self) -> List[Category]:
        logger.warning("CategoryStore: Using emergency fallback categories")
        return [Category.from_dict(c) for c in get_emergency_catalog()]

    def _set_categories(self, categories: List[Category], source: str) -> None:
        self.categories = list(categories)
        self.categories_by_id = {c.id: c for c in self.categories}
        self.source = source
        self.stats['total_categories'] = len(self.categories)
        self.cache.clear()

    def _track(self, operation: str, error: BaseException, **context) -> None:
        if self.error_tracker is not None:
            self.error_tracker.track_manager_error('CategoryStore', operation, error, **context)

    def _degrade(self, degradation_type: DegradationType, reason: str) -> None:
        if self.degradation is not None and not self.degradation.is_active(degradation_type):
            self.degradation.activate(degradation_type, reason=reason, manager='CategoryStore')

    def _cache_enabled(self) -> bool:
        return self.degradation is None or not self.degradation.is_active(DegradationType.MEMORY_CONSTRAINED)

    def _recover_categories(self) -> bool:
        categories, source = self._load_catalog(track=False)
        if source == 'emergency':
            return False
        self._set_categories(categories, source)
        return True

    def _recover_words(self) -> bool:
        return any(c.words for c in self.categories)

    def get_by_id(self, category_id) -> Optional[Category]:
        if not category_id or not isinstance(category_id, str):
            return None
        self._ensure_initialized()
        return self.categories_by_id.get(category_id)

    def get_all(self) -> List[Category]:
        self._ensure_initialized()
        return list(self.categories)

    def get_random(self) -> Optional[Category]:
        self._ensure_initialized()
        if not self.categories:
            return None
        return self.rng.choice(self.categories)

    def get_by_difficulty(self, difficulty) -> List[Category]:
        if isinstance(difficulty, bool) or not isinstance(difficulty, (int, float)):
            return []
        self._ensure_initialized()
        use_cache = self._cache_enabled()
        if use_cache:
            cached = self.cache.get_by_difficulty(difficulty)
            if cached is not None:
                return list(cached)

        result = [c for c in self.categories if c.difficulty == difficulty]
        if use_cache:
            self.cache.set_by_difficulty(difficulty, result)
        return list(result)

    def get_by_difficulty_range(self, min_difficulty, max_difficulty) -> List[Category]:
        self._ensure_initialized()
        return [c for c in self.categories if min_difficulty <= c.difficulty <= max_difficulty]

    def get_by_letter(self, letter) -> List[Category]:
        if not letter or not isinstance(letter, str):
            return []
        self._ensure_initialized()
        upper = letter.upper()
        use_cache = self._cache_enabled()
        if use_cache:
            cached = self.cache.get_compatible(upper)
            if cached is not None:
                return list(cached)

        result = [c for c in self.categories if c.accepts(upper)]
        if use_cache:
            self.cache.set_compatible(upper, result)
        return list(result)

    def get_by_tag(self, tag) -> List[Category]:
        if not tag or not isinstance(tag, str):
            return []
        self._ensure_initialized()
        tag = tag.lower()
        return [c for c in self.categories if tag in c.tags]

    def search(self, term) -> List[Category]:
        """Case-insensitive substring match on category names."""
        if not term or not isinstance(term, str):
            return []
        term = term.lower().strip()
        if not term:
            return []
        self._ensure_initialized()
        return [c for c in self.categories if term in c.name.lower()]

    def add_word(self, category_id: str, word: str) -> bool:
        category = self.get_by_id(category_id)
        word = (word or '').strip().lower()
        if category is None or not word or word in category.words:
            return False

        updated = replace(category, words=category.words + (word,), average_word_length=None)
        self.categories = [updated if c.id == category_id else c for c in self.categories]
        self.categories_by_id[category_id] = updated
        self.cache.clear()
        logger.info(f"CategoryStore: Added '{word}' to {category_id}")
        return True

    def replace_categories(self, data: List[Dict[str, Any]]) -> bool:
        try:
            _CATALOG.validate_python(data)
            categories = [Category.from_dict(c) for c in data]
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            self._track('validateCategories', ValueError(f"Invalid category catalog: {e}"), optional=True)
            return False
        self.initialized = True
        self._set_categories(categories, 'replaced')
        logger.info(f"CategoryStore: Replaced catalog with {len(categories)} categories")
        return True

    def save_categories(self) -> bool:
        if self.storage is None:
            return False
        self._ensure_initialized()
        result = self.storage.set(CATEGORIES_KEY, [c.to_dict() for c in self.categories])
        if not result.ok:
            self._track('saveCategories', RuntimeError(result.message))
            logger.error(f"CategoryStore: Failed to save categories: {result.message}")
            return False
        logger.info("CategoryStore: Categories saved to storage")
        return True

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            'source': self.source,
            'initialized': self.initialized,
            'available': self.available,
            'cache': self.cache.get_stats(),
        }

    def clear(self) -> None:
        self.categories = []
        self.categories_by_id = {}
        self.cache.clear()
        self.stats['total_categories'] = 0
        logger.info("CategoryStore: Cleared all categories and caches")

    def destroy(self) -> None:
        self.clear()
        self.storage = None
        self.initialized = False
        logger.info("CategoryStore: Destroyed")
