import asyncio

from app.models.schemas import SafetyRatings
from app.services.feedback_store import (
    NEUTRAL_SCORE,
    CommunityFeedbackStore,
    calculate_area_score,
)
from fakes import InterleavingCollection, ReadOnlyEmptyCollection, SlowCollection, UnreachableCollection

LAT, LNG = 12.9716, 77.5946
GRID = "12.97_77.59"


# ═══════════════════════════════════════════════════════════════
# Area score
# ═══════════════════════════════════════════════════════════════

def test_area_score_formula() -> None:
    assert calculate_area_score(0, 0) == 50
    assert calculate_area_score(1, 0) == 100
    assert calculate_area_score(0, 1) == 0
    assert calculate_area_score(1, 1) == 50
    assert calculate_area_score(1, 7) == 13  # 12.5 rounds half up
    assert calculate_area_score(2, 1) == 67


async def test_empty_cell_is_neutral(store) -> None:
    assert await store.get_area_data(GRID) is None
    assert await store.get_area_score(GRID) == NEUTRAL_SCORE


async def test_scores_follow_reports(store) -> None:
    first = await store.submit_feedback("alice", LAT, LNG, True)
    assert first.success
    assert first.grid_id == GRID
    assert first.new_score == 100
    assert await store.get_area_score(GRID) == 100

    second = await store.submit_feedback("bob", LAT, LNG, False)
    assert second.success
    assert second.new_score == 50
    assert second.message == "Thank you! Area marked as unsafe. Stay safe!"

    data = await store.get_area_data(GRID)
    assert (data.safe_count, data.unsafe_count) == (1, 1)


async def test_multiple_area_scores_dedupe(store) -> None:
    await store.submit_feedback("alice", LAT, LNG, False)
    scores = await store.get_multiple_area_scores([GRID, "10.00_10.00", GRID])
    assert scores == {GRID: 0, "10.00_10.00": 50}


# ═══════════════════════════════════════════════════════════════
# Eligibility
# ═══════════════════════════════════════════════════════════════

async def test_new_user_is_eligible(store) -> None:
    result = await store.check_eligibility("alice", GRID)
    assert result.can_submit
    assert result.hours_remaining is None


async def test_cooldown_23_hours_denied_25_hours_allowed(store, clock) -> None:
    await store.submit_feedback("alice", LAT, LNG, True)

    clock.advance(23)
    denied = await store.check_eligibility("alice", GRID)
    assert not denied.can_submit
    assert denied.hours_remaining == 1
    assert denied.message.endswith("Try again in 1 hour.")

    clock.advance(2)
    allowed = await store.check_eligibility("alice", GRID)
    assert allowed.can_submit


async def test_cooldown_is_per_cell_and_per_user(store) -> None:
    await store.submit_feedback("alice", LAT, LNG, True)

    assert (await store.check_eligibility("bob", GRID)).can_submit
    assert (await store.check_eligibility("alice", "10.00_10.00")).can_submit


async def test_denied_submission_does_not_mutate(store, clock) -> None:
    await store.submit_feedback("alice", LAT, LNG, True)
    clock.advance(1)

    result = await store.submit_feedback("alice", LAT, LNG, False)

    assert not result.success
    assert result.grid_id == GRID
    assert "23 hours" in result.message
    data = await store.get_area_data(GRID)
    assert (data.safe_count, data.unsafe_count) == (1, 0)
    assert len(await store.get_area_reports(GRID)) == 1


async def test_resubmission_after_cooldown_counts_again(store, clock) -> None:
    await store.submit_feedback("alice", LAT, LNG, True)
    clock.advance(24)

    result = await store.submit_feedback("alice", LAT, LNG, True)

    assert result.success
    assert (await store.get_area_data(GRID)).safe_count == 2


async def test_eligibility_store_error_fails_closed(store) -> None:
    # an unreadable cooldown record means "cannot submit"
    store._cooldowns = UnreachableCollection()

    result = await store.check_eligibility("alice", GRID)

    assert not result.can_submit
    assert result.hours_remaining == 24


async def test_eligibility_timeout_fails_closed(store) -> None:
    store._cooldowns = SlowCollection()

    result = await store.check_eligibility("alice", GRID, timeout=0.01)

    assert not result.can_submit


async def test_zero_timeout_is_not_replaced_by_default(store) -> None:
    store._cooldowns = SlowCollection()

    result = await store.check_eligibility("alice", GRID, timeout=0)

    assert not result.can_submit
    assert result.hours_remaining == 24


async def test_cooldown_record_without_timestamp_fails_closed(store, db) -> None:
    await db["user_grid_feedbacks"].insert_one({"_id": f"alice_{GRID}", "userId": "alice", "gridId": GRID})

    eligibility = await store.check_eligibility("alice", GRID)
    submitted = await store.submit_feedback("alice", LAT, LNG, True)

    assert not eligibility.can_submit
    assert eligibility.hours_remaining == 24
    assert not submitted.success
    assert await store.get_area_data(GRID) is None


async def test_submit_denied_when_eligibility_unavailable(store) -> None:
    store._cooldowns = UnreachableCollection()

    result = await store.submit_feedback("alice", LAT, LNG, True)

    assert not result.success
    assert await store.get_area_data(GRID) is None


# ═══════════════════════════════════════════════════════════════
# Submit: atomicity and concurrency
# ═══════════════════════════════════════════════════════════════

async def test_parallel_submissions_lose_no_updates(store) -> None:
    users = [f"user-{i}" for i in range(10)]

    results = await asyncio.gather(*(store.submit_feedback(u, LAT, LNG, True) for u in users))

    assert all(r.success for r in results)
    data = await store.get_area_data(GRID)
    assert data.safe_count == len(users)
    assert data.unsafe_count == 0


async def test_parallel_mixed_submissions(store) -> None:
    votes = [(f"user-{i}", i % 3 != 0) for i in range(9)]

    await asyncio.gather(*(store.submit_feedback(u, LAT, LNG, safe) for u, safe in votes))

    data = await store.get_area_data(GRID)
    assert (data.safe_count, data.unsafe_count) == (6, 3)


async def test_same_user_racing_counts_once(store) -> None:
    results = await asyncio.gather(
        store.submit_feedback("alice", LAT, LNG, True),
        store.submit_feedback("alice", LAT, LNG, True),
    )

    assert sorted(r.success for r in results) == [False, True]
    assert (await store.get_area_data(GRID)).safe_count == 1


async def test_heavy_contention_on_one_cell_with_default_settings(db, clock) -> None:
    store = CommunityFeedbackStore(db, clock=clock)
    store._areas = InterleavingCollection(store._areas)
    store._cooldowns = InterleavingCollection(store._cooldowns)
    users = [f"user-{i}" for i in range(150)]

    results = await asyncio.gather(*(store.submit_feedback(u, LAT, LNG, i % 2 == 0) for i, u in enumerate(users)))

    assert all(r.success for r in results)
    data = await store.get_area_data(GRID)
    assert (data.safe_count, data.unsafe_count) == (75, 75)


async def test_cooldown_write_failure_reverts_count(store) -> None:
    store._cooldowns = ReadOnlyEmptyCollection()

    result = await store.submit_feedback("alice", LAT, LNG, True)

    assert not result.success
    assert result.message == "Failed to submit feedback. Please try again."
    data = await store.get_area_data(GRID)
    assert (data.safe_count, data.unsafe_count) == (0, 0)
    assert await store.get_area_score(GRID) == NEUTRAL_SCORE


async def test_area_write_failure_reports_generic_error(store) -> None:
    store._areas = ReadOnlyEmptyCollection()

    result = await store.submit_feedback("alice", LAT, LNG, True)

    assert not result.success
    assert result.message == "Failed to submit feedback. Please try again."
    assert (await store.check_eligibility("alice", GRID)).can_submit


async def test_submit_requires_user_and_valid_coordinates(store) -> None:
    anonymous = await store.submit_feedback("", LAT, LNG, True)
    assert anonymous.message == "You must be logged in to submit feedback"

    bad = await store.submit_feedback("alice", float("nan"), LNG, True)
    assert not bad.success


# ═══════════════════════════════════════════════════════════════
# Reports
# ═══════════════════════════════════════════════════════════════

async def test_reports_are_newest_first_with_ratings(store, clock) -> None:
    ratings = SafetyRatings(lighting=2, crowdedness=3, road_condition=4, overall_safety_score=6)
    await store.submit_feedback("alice", LAT, LNG, True, "  Busy market, lots of people  ")
    clock.advance(1)
    await store.submit_feedback("bob", LAT, LNG, False, None, ratings)

    reports = await store.get_area_reports(GRID)

    assert [r.user_id for r in reports] == ["bob", "alice"]
    assert reports[0].ratings == ratings
    assert reports[0].experience_text == ""
    assert reports[1].experience_text == "Busy market, lots of people"
    assert reports[1].ratings is None


async def test_report_limit(store, clock) -> None:
    for i in range(4):
        await store.submit_feedback(f"user-{i}", LAT, LNG, True)
        clock.advance(0.1)

    assert len(await store.get_area_reports(GRID, limit=2)) == 2


# ═══════════════════════════════════════════════════════════════
# Route community score
# ═══════════════════════════════════════════════════════════════

async def test_route_score_empty_route(store) -> None:
    score = await store.route_community_score([])
    assert (score.score, score.covered_grids, score.total_grids) == (50, 0, 0)


async def test_route_score_averages_unique_cells(store) -> None:
    await store.submit_feedback("alice", 12.97, 77.59, True)
    path = [(12.9701, 77.5902), (12.9699, 77.5898), (12.98, 77.60), (12.99, 77.61)]

    score = await store.route_community_score(path)

    assert score.total_grids == 3
    assert score.covered_grids == 1
    assert score.score == 67  # (100 + 50 + 50) / 3


async def test_route_coverage_counts_balanced_cells(store) -> None:
    await store.submit_feedback("alice", 12.97, 77.59, True)
    await store.submit_feedback("bob", 12.97, 77.59, False)

    score = await store.route_community_score([(12.97, 77.59), (12.98, 77.60)])

    assert score.score == 50
    assert score.covered_grids == 1
    assert score.total_grids == 2


async def test_route_score_from_polyline(store) -> None:
    await store.submit_feedback("alice", 38.5, -120.2, False)

    score = await store.route_community_score_from_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@", sample_interval=1)

    assert score.total_grids == 3
    assert score.covered_grids == 1
    assert score.score == 33


# ═══════════════════════════════════════════════════════════════
# App feedback
# ═══════════════════════════════════════════════════════════════

async def test_app_feedback_once_per_user(store) -> None:
    assert await store.get_app_feedback("alice") is None

    first = await store.submit_app_feedback("alice", 5, "  Great at night ")
    second = await store.submit_app_feedback("alice", 1, "changed my mind")

    assert first.success
    assert not second.success
    saved = await store.get_app_feedback("alice")
    assert (saved.rating, saved.feedback_text) == (5, "Great at night")


async def test_store_honours_custom_cooldown(db, clock) -> None:
    short = CommunityFeedbackStore(db, cooldown_hours=1.0, clock=clock)
    await short.submit_feedback("alice", LAT, LNG, True)
    clock.advance(0.5)

    result = await short.check_eligibility("alice", GRID)

    assert not result.can_submit
    assert result.hours_remaining == 1
