from typing import Dict, List, Optional
import logging
from datetime import datetime

import pandas as pd

logger = logging.getLogger(__name__)

STATS_KEY_PREFIX = "player_stats:"
MAX_STORED_ROUNDS = 200
RECENT_WINDOW = 10
MIN_ROUNDS_FOR_ADAPTATION = 3
RATIO_CAP = 1.5


def performance_ratio(words_found, target_word_count) -> float:
    """words_found / target, capped so one huge round can't dominate the average."""
    try:
        target = float(target_word_count)
        found = float(words_found)
    except (TypeError, ValueError):
        return 0.0
    if target <= 0:
        return 0.0
    return min(RATIO_CAP, max(0.0, found / target))


class PlayerStats:
    def __init__(self, storage=None, recent_window: int = RECENT_WINDOW):
        self.storage = storage
        self.recent_window = recent_window
        self.stats: Dict[str, Dict] = {}

    def _key(self, nickname: str) -> str:
        return f"{STATS_KEY_PREFIX}{nickname}"

    def _empty_user_stats(self) -> Dict:
        return {
            "rounds": [],
            "categories": {},
            "difficulties": {},
            "recent_ratios": [],
        }

    def _load_stats(self, nickname: str) -> Dict:
        """Load a player's statistics from storage, or start fresh."""
        if nickname in self.stats:
            return self.stats[nickname]
        user_stats = None
        if self.storage is not None:
            result = self.storage.get(self._key(nickname))
            if result.ok and isinstance(result.value, dict):
                user_stats = result.value
            elif not result.ok:
                logger.warning(f"Could not load stats for {nickname}: {result.message}")
        if user_stats is None:
            user_stats = self._empty_user_stats()
        for field, empty in self._empty_user_stats().items():
            user_stats.setdefault(field, empty)
        self.stats[nickname] = user_stats
        return user_stats

    def _save_stats(self, nickname: str) -> bool:
        if self.storage is None:
            return False
        result = self.storage.set(self._key(nickname), self.stats[nickname])
        return result.ok

    def record_round(self, round_summary: Dict) -> Dict:
        """Record a finished round for ``round_summary['nickname']``."""
        nickname = round_summary.get("nickname")
        if not nickname:
            raise ValueError("Nickname must be set for per-player statistics.")

        target = round_summary.get("target_word_count", 0)
        words_found = round_summary.get("words_found", 0)
        duration = round_summary.get("duration", 0) or 0
        score = round_summary.get("score", 0) or 0
        ratio = performance_ratio(words_found, target)

        round_record = {
            "timestamp": datetime.now().isoformat(),
            "category_id": round_summary.get("category_id", "unknown"),
            "letter": round_summary.get("letter", ""),
            "difficulty": int(round_summary.get("difficulty", 3) or 3),
            "round_type": round_summary.get("round_type", "default"),
            "target_word_count": target,
            "words_found": words_found,
            "score": score,
            "duration": duration,
            "ratio": ratio,
            "is_fallback": bool(round_summary.get("is_fallback", False)),
        }

        user_stats = self._load_stats(nickname)
        user_stats["rounds"].append(round_record)
        user_stats["rounds"] = user_stats["rounds"][-MAX_STORED_ROUNDS:]

        # Update category stats
        category_id = round_record["category_id"]
        if category_id not in user_stats["categories"]:
            user_stats["categories"][category_id] = {
                "rounds_played": 0,
                "avg_score": 0,
                "best_score": score,
                "total_time": 0,
            }
        cat_stats = user_stats["categories"][category_id]
        cat_stats["rounds_played"] += 1
        cat_stats["avg_score"] = (cat_stats["avg_score"] * (cat_stats["rounds_played"] - 1) + score) / cat_stats["rounds_played"]
        cat_stats["best_score"] = max(cat_stats["best_score"], score)
        cat_stats["total_time"] += duration

        # Update difficulty stats (JSON keys are strings)
        difficulty_key = str(round_record["difficulty"])
        if difficulty_key not in user_stats["difficulties"]:
            user_stats["difficulties"][difficulty_key] = {"rounds_played": 0, "avg_ratio": 0}
        diff_stats = user_stats["difficulties"][difficulty_key]
        diff_stats["rounds_played"] += 1
        diff_stats["avg_ratio"] = (diff_stats["avg_ratio"] * (diff_stats["rounds_played"] - 1) + ratio) / diff_stats["rounds_played"]

        user_stats["recent_ratios"] = (user_stats["recent_ratios"] + [ratio])[-self.recent_window:]

        if not self._save_stats(nickname) and self.storage is not None:
            logger.warning(f"Stats for {nickname} kept in memory only")
        logger.info(f"Recorded round for {nickname}: {words_found}/{target} words (ratio {ratio:.2f})")
        return round_record

    def recommend_difficulty(self, nickname: Optional[str], base_difficulty: int = 3) -> int:
        """
        Suggest the next round's difficulty from recent performance.

        Args:
            nickname: Player to look up; None returns the base difficulty
            base_difficulty: Difficulty to adjust from

        Returns:
            Difficulty in 1..5
        """
        base = max(1, min(5, int(base_difficulty or 3)))
        if not nickname:
            return base
        recent = self._load_stats(nickname)["recent_ratios"]
        if len(recent) < MIN_ROUNDS_FOR_ADAPTATION:
            return base
        average = sum(recent) / len(recent)
        if average >= 1.0:
            return min(5, base + 1)
        if average <= 0.5:
            return max(1, base - 1)
        return base

    def get_player_stats(self, nickname: str) -> Dict:
        user_stats = self._load_stats(nickname)
        rounds = user_stats["rounds"]
        if not rounds:
            return {}
        return {
            "total_rounds": len(rounds),
            "avg_score": sum(r["score"] for r in rounds) / len(rounds),
            "best_score": max(r["score"] for r in rounds),
            "avg_ratio": sum(r["ratio"] for r in rounds) / len(rounds),
            "favorite_category": max(
                user_stats["categories"],
                key=lambda c: user_stats["categories"][c]["rounds_played"]
            ),
            "total_time": sum(r["duration"] for r in rounds),
            "recommended_difficulty": self.recommend_difficulty(nickname),
            "recent_rounds": sorted(rounds, key=lambda r: r["timestamp"], reverse=True)[:5],
        }

    def performance_by_difficulty(self, nickname: str) -> pd.DataFrame:
        """Per-difficulty round count and means, one row per difficulty played."""
        rounds: List[Dict] = self._load_stats(nickname)["rounds"]
        columns = ["difficulty", "rounds", "avg_words_found", "avg_ratio", "avg_score"]
        if not rounds:
            return pd.DataFrame(columns=columns)
        df = pd.DataFrame(rounds)
        summary = df.groupby("difficulty").agg(
            rounds=("ratio", "size"),
            avg_words_found=("words_found", "mean"),
            avg_ratio=("ratio", "mean"),
            avg_score=("score", "mean"),
        ).reset_index()
        return summary[columns]

    def reset_player(self, nickname: str) -> None:
        self.stats[nickname] = self._empty_user_stats()
        if self.storage is not None:
            self.storage.remove(self._key(nickname))
