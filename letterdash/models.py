"""Value types shared across the round engine."""

import math
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ'


def _unique_upper(letters) -> Tuple[str, ...]:
    seen = []
    for letter in letters or ():
        letter = str(letter).strip().upper()
        if letter and letter not in seen:
            seen.append(letter)
    return tuple(seen)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def _as_number(value: Any) -> Optional[float]:
    """Stored extras are not type-checked; anything non-numeric is recomputed."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    difficulty: int
    words: Tuple[str, ...] = ()
    # Declared order is kept: sampling over it must be deterministic
    letter_compatibility: Tuple[str, ...] = ()
    tags: FrozenSet[str] = frozenset()
    theme: str = ''
    estimated_words: int = 0
    average_word_length: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, 'words', tuple(self.words))
        object.__setattr__(self, 'letter_compatibility', _unique_upper(self.letter_compatibility))
        object.__setattr__(self, 'tags', frozenset(str(t).lower() for t in self.tags))
        if self.average_word_length is None:
            avg = sum(len(w) for w in self.words) / len(self.words) if self.words else 0
            object.__setattr__(self, 'average_word_length', round(avg, 2))
        if not self.estimated_words:
            object.__setattr__(self, 'estimated_words', len(self.words))

    def accepts(self, letter: Optional[str]) -> bool:
        """An empty compatibility list accepts every letter."""
        if not letter:
            return False
        if not self.letter_compatibility:
            return True
        return letter.upper() in self.letter_compatibility

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Category':
        return cls(
            id=data['id'],
            name=data['name'],
            difficulty=round_half_up(data['difficulty']),
            words=tuple(data.get('words') or ()),
            letter_compatibility=tuple(data.get('letter_compatibility') or ()),
            tags=frozenset(data.get('tags') or ()),
            theme=data.get('theme', ''),
            estimated_words=max(0, round_half_up(_as_number(data.get('estimated_words')) or 0)),
            average_word_length=_as_number(data.get('average_word_length')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'difficulty': self.difficulty,
            'words': list(self.words),
            'letter_compatibility': list(self.letter_compatibility),
            'tags': sorted(self.tags),
            'theme': self.theme,
            'estimated_words': self.estimated_words,
            'average_word_length': self.average_word_length,
        }


@dataclass(frozen=True)
class Playability:
    score: int
    estimated_words: int
    difficulty: int
    feasible: bool
    reason: str


class ScoringConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_points: float = Field(10, ge=0)
    length_multiplier: float = Field(1.0, ge=0)
    difficulty_bonus: float = Field(0, ge=0)


class RoundConfig(BaseModel):
    """A round-type preset: timing, target, scoring weights and letter strategy."""

    model_config = ConfigDict(frozen=True)

    duration: float = Field(..., gt=0)  # seconds
    difficulty: int = Field(..., ge=1, le=5)
    target_word_count: int = Field(..., gt=0)
    scoring: ScoringConfig
    letter_strategy: Literal['balanced', 'challenging'] = 'balanced'
    allow_retries: bool = True


@dataclass(frozen=True)
class Combination:
    category: Category
    letter: str
    difficulty: int
    playability: Playability
    round_config: RoundConfig
    generated_at: float = field(default_factory=time.time)
    attempts: int = 1
    is_fallback: bool = False
    generation_type: str = 'standard'
    # Difficulty the round was generated for, after adaptive adjustment
    target_difficulty: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category.to_dict(),
            'letter': self.letter,
            'difficulty': self.difficulty,
            'playability': asdict(self.playability),
            'round_config': self.round_config.model_dump(),
            'generated_at': self.generated_at,
            'attempts': self.attempts,
            'is_fallback': self.is_fallback,
            'generation_type': self.generation_type,
            'target_difficulty': self.target_difficulty,
        }


@dataclass(frozen=True)
class DegradationRecord:
    type: str
    active: bool
    severity: int
    user_message: str


@dataclass
class ErrorEntry:
    id: str
    timestamp: float
    message: str
    category: str
    severity: int
    manager: str
    operation: str
    recoverable: bool
    recovery: List[str] = field(default_factory=list)
    user_impact: str = ''
    context: Dict[str, Any] = field(default_factory=dict)
    resolved: bool = False
    resolution: str = ''
    resolved_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ErrorEntry':
        known = {k: data[k] for k in cls.__dataclass_fields__ if k in data}
        return cls(**known)
