import pytest

from letterdash.player_stats import PlayerStats, performance_ratio


def _summary(nickname="ann", words_found=6, target=12, difficulty=3, score=40, category_id="animals"):
    return {
        "nickname": nickname,
        "category_id": category_id,
        "letter": "C",
        "difficulty": difficulty,
        "target_word_count": target,
        "words_found": words_found,
        "score": score,
        "duration": 90,
    }


@pytest.mark.unit
def test_performance_ratio():
    assert performance_ratio(6, 12) == 0.5
    assert performance_ratio(40, 10) == 1.5
    assert performance_ratio(3, 0) == 0.0
    assert performance_ratio(None, 10) == 0.0
    assert performance_ratio(-2, 10) == 0.0


@pytest.mark.unit
def test_record_round_requires_nickname():
    stats = PlayerStats()
    with pytest.raises(ValueError):
        stats.record_round(_summary(nickname=""))


@pytest.mark.unit
def test_record_round_updates_aggregates(storage):
    stats = PlayerStats(storage)
    stats.record_round(_summary(score=40))
    record = stats.record_round(_summary(score=60, words_found=12))

    assert record["ratio"] == 1.0
    user = storage.get("player_stats:ann").value
    assert len(user["rounds"]) == 2
    assert user["categories"]["animals"]["rounds_played"] == 2
    assert user["categories"]["animals"]["avg_score"] == 50
    assert user["categories"]["animals"]["best_score"] == 60
    assert user["difficulties"]["3"]["avg_ratio"] == 0.75
    assert user["recent_ratios"] == [0.5, 1.0]


@pytest.mark.unit
def test_stats_survive_reload(storage):
    PlayerStats(storage).record_round(_summary())
    reloaded = PlayerStats(storage)
    assert reloaded.get_player_stats("ann")["total_rounds"] == 1


@pytest.mark.unit
def test_storage_failure_keeps_stats_in_memory(failing_storage):
    stats = PlayerStats(failing_storage)
    stats.record_round(_summary())
    assert stats.get_player_stats("ann")["total_rounds"] == 1


@pytest.mark.unit
@pytest.mark.parametrize("ratios, expected", [
    ([], 3),
    ([12, 12], 3),
    ([12, 15, 13], 4),
    ([2, 3, 6], 2),
    ([8, 8, 8], 3),
])
def test_recommend_difficulty(ratios, expected):
    stats = PlayerStats()
    for words_found in ratios:
        stats.record_round(_summary(words_found=words_found))
    assert stats.recommend_difficulty("ann", base_difficulty=3) == expected


@pytest.mark.unit
def test_recommendation_stays_in_range():
    stats = PlayerStats()
    for _ in range(3):
        stats.record_round(_summary(nickname="pro", words_found=30))
        stats.record_round(_summary(nickname="new", words_found=0))
    assert stats.recommend_difficulty("pro", base_difficulty=5) == 5
    assert stats.recommend_difficulty("new", base_difficulty=1) == 1
    assert stats.recommend_difficulty(None, base_difficulty=4) == 4


@pytest.mark.unit
def test_recent_window_limits_history():
    stats = PlayerStats(recent_window=3)
    for words_found in (0, 0, 0, 12, 12, 12):
        stats.record_round(_summary(words_found=words_found))
    assert stats.recommend_difficulty("ann") == 4


@pytest.mark.unit
def test_player_summary():
    stats = PlayerStats()
    assert stats.get_player_stats("ann") == {}
    stats.record_round(_summary(score=10, category_id="foods"))
    stats.record_round(_summary(score=30, category_id="animals"))
    stats.record_round(_summary(score=20, category_id="animals"))

    summary = stats.get_player_stats("ann")
    assert summary["total_rounds"] == 3
    assert summary["avg_score"] == 20
    assert summary["best_score"] == 30
    assert summary["favorite_category"] == "animals"
    assert summary["total_time"] == 270
    assert len(summary["recent_rounds"]) == 3


@pytest.mark.unit
def test_performance_by_difficulty():
    stats = PlayerStats()
    assert list(stats.performance_by_difficulty("ann").columns) == [
        "difficulty", "rounds", "avg_words_found", "avg_ratio", "avg_score"
    ]

    stats.record_round(_summary(difficulty=2, words_found=6, score=10))
    stats.record_round(_summary(difficulty=2, words_found=12, score=30))
    stats.record_round(_summary(difficulty=4, words_found=3, score=50))

    df = stats.performance_by_difficulty("ann")
    assert df["difficulty"].tolist() == [2, 4]
    assert df["rounds"].tolist() == [2, 1]
    assert df["avg_words_found"].tolist() == [9.0, 3.0]
    assert df["avg_ratio"].tolist() == [0.75, 0.25]
    assert df["avg_score"].tolist() == [20.0, 50.0]


@pytest.mark.unit
def test_reset_player(storage):
    stats = PlayerStats(storage)
    stats.record_round(_summary())
    stats.reset_player("ann")
    assert stats.get_player_stats("ann") == {}
    assert storage.has("player_stats:ann").value is False
