"""
SafeRoute — Community Feedback Store
Area-based safe/unsafe reporting on top of MongoDB (Motor).

Collections:
  - areas               per grid cell: safeCount, unsafeCount, lastUpdated, version
  - user_grid_feedbacks per (user, cell): lastSubmittedAt, the 24h cooldown
  - area_reports        append-only history feed
  - app_feedbacks       one app rating per user

Concurrency:
  Cell counts change through a single server-side `$inc`, so the new value
  is always derived from the stored one inside the same atomic write and
  parallel submitters to one cell never retry. Different cells never contend.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.engine.grid import decode_route_points, grid_id as make_grid_id, unique_grid_ids
from app.models.db_models import (
    app_feedback_document,
    area_count_update,
    area_report_document,
    cooldown_document,
    cooldown_key,
)
from app.models.schemas import (
    AppFeedback,
    AppFeedbackResult,
    AreaReport,
    AreaSafetyData,
    EligibilityResult,
    FeedbackResult,
    RouteCommunityScore,
    SafetyRatings,
)
from app.utils.numeric import round_half_up

logger = logging.getLogger("saferoute.feedback_store")

T = TypeVar("T")

NEUTRAL_SCORE = 50
REPORT_APPEND_ATTEMPTS = 3

MSG_LOGIN_REQUIRED = "You must be logged in to submit feedback"
MSG_SUBMIT_FAILED = "Failed to submit feedback. Please try again."
MSG_ELIGIBILITY_UNAVAILABLE = "Unable to verify feedback eligibility right now. Please try again later."


class TransientStoreError(Exception):
    """I/O failure or timeout against the document store. Safe to retry later."""


class TransactionConflictError(TransientStoreError):
    """Creating a new cell kept racing other writers past the retry budget."""


def utcnow() -> datetime:
    """Naive UTC, matching what pymongo hands back for stored datetimes."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def calculate_area_score(safe_count: int, unsafe_count: int) -> int:
    """Share of safe reports as 0-100. A cell without reports is neutral (50)."""
    total = safe_count + unsafe_count
    if total == 0:
        return NEUTRAL_SCORE
    return round_half_up(safe_count / total * 100)


def cooldown_message(hours_remaining: int) -> str:
    unit = "hour" if hours_remaining == 1 else "hours"
    return f"You already submitted feedback for this area. Try again in {hours_remaining} {unit}."


class CommunityFeedbackStore:
    """
    Reads and transactional writes for community area feedback.

    Args:
        db: Motor database holding the feedback collections
        cooldown_hours: per-user, per-cell resubmission window
        timeout: default seconds allowed for each store round-trip
        max_retries: attempts to create a cell when concurrent upserts collide
        clock: returns the current time (naive UTC); injectable for tests
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        cooldown_hours: float = 24.0,
        timeout: float = 5.0,
        max_retries: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._areas = db["areas"]
        self._cooldowns = db["user_grid_feedbacks"]
        self._reports = db["area_reports"]
        self._app_feedbacks = db["app_feedbacks"]
        self.cooldown_hours = cooldown_hours
        self.timeout = timeout
        self.max_retries = max_retries
        self._clock = clock

    # ═══════════════════════════════════════════════════════════
    # Plumbing
    # ═══════════════════════════════════════════════════════════

    def _now(self) -> datetime:
        return _as_naive_utc(self._clock())

    async def _call(self, op: Awaitable[T], timeout: Optional[float] = None) -> T:
        """Run one store operation under a timeout, mapping driver errors."""
        try:
            return await asyncio.wait_for(op, self.timeout if timeout is None else timeout)
        except DuplicateKeyError:
            raise
        except asyncio.TimeoutError as e:
            raise TransientStoreError("document store timed out") from e
        except PyMongoError as e:
            raise TransientStoreError(f"document store error: {e}") from e

    # ═══════════════════════════════════════════════════════════
    # Area reads
    # ═══════════════════════════════════════════════════════════

    async def get_area_data(self, grid_id: str, timeout: Optional[float] = None) -> Optional[AreaSafetyData]:
        """Raw counts for a cell, or None when nobody has reported it yet."""
        doc = await self._call(self._areas.find_one({"_id": grid_id}), timeout)
        if doc is None:
            return None
        return AreaSafetyData(
            safe_count=doc.get("safeCount", 0),
            unsafe_count=doc.get("unsafeCount", 0),
            last_updated=doc.get("lastUpdated"),
        )

    async def get_area_score(self, grid_id: str, timeout: Optional[float] = None) -> int:
        data = await self.get_area_data(grid_id, timeout)
        if data is None:
            return NEUTRAL_SCORE
        return calculate_area_score(data.safe_count, data.unsafe_count)

    async def get_multiple_area_data(
        self, grid_ids: Iterable[str], timeout: Optional[float] = None
    ) -> dict[str, Optional[AreaSafetyData]]:
        unique = list(dict.fromkeys(grid_ids))
        data = await asyncio.gather(*(self.get_area_data(g, timeout) for g in unique))
        return dict(zip(unique, data))

    async def get_multiple_area_scores(
        self, grid_ids: Iterable[str], timeout: Optional[float] = None
    ) -> dict[str, int]:
        data = await self.get_multiple_area_data(grid_ids, timeout)
        return {
            g: NEUTRAL_SCORE if d is None else calculate_area_score(d.safe_count, d.unsafe_count)
            for g, d in data.items()
        }

    async def get_area_reports(
        self, grid_id: str, limit: int = 10, timeout: Optional[float] = None
    ) -> list[AreaReport]:
        """Most recent reports for a cell, newest first."""
        cursor = self._reports.find({"gridId": grid_id}, sort=[("timestamp", -1)], limit=limit)
        docs = await self._call(cursor.to_list(length=limit), timeout)
        return [
            AreaReport(
                id=str(doc["_id"]),
                grid_id=doc["gridId"],
                user_id=doc["userId"],
                is_safe=doc["isSafe"],
                experience_text=doc.get("experienceText", ""),
                ratings=SafetyRatings.model_validate(doc["ratings"]) if doc.get("ratings") else None,
                timestamp=doc["timestamp"],
            )
            for doc in docs
        ]

    # ═══════════════════════════════════════════════════════════
    # Eligibility (24h cooldown)
    # ═══════════════════════════════════════════════════════════

    async def check_eligibility(
        self, user_id: str, grid_id: str, timeout: Optional[float] = None
    ) -> EligibilityResult:
        """Whether `user_id` may rate `grid_id` now. Never raises."""
        if not user_id:
            return EligibilityResult(can_submit=False, message=MSG_LOGIN_REQUIRED)

        try:
            record = await self._call(
                self._cooldowns.find_one({"_id": cooldown_key(user_id, grid_id)}), timeout
            )
        except TransientStoreError as e:
            # Policy: fail closed. A store error must never let a submission through.
            logger.error(f"Eligibility check failed for {user_id}@{grid_id}, denying: {e}")
            return self._eligibility_unavailable()

        if record is None:
            return EligibilityResult(can_submit=True)

        last_submitted = record.get("lastSubmittedAt")
        if not isinstance(last_submitted, datetime):
            # Malformed cooldown record: fail closed like a store error
            logger.error(f"Cooldown record for {user_id}@{grid_id} has no valid lastSubmittedAt, denying")
            return self._eligibility_unavailable()

        last = _as_naive_utc(last_submitted)
        hours_since = (self._now() - last).total_seconds() / 3600
        if hours_since >= self.cooldown_hours:
            return EligibilityResult(can_submit=True)

        hours_remaining = math.ceil(self.cooldown_hours - hours_since)
        return EligibilityResult(
            can_submit=False,
            hours_remaining=hours_remaining,
            message=cooldown_message(hours_remaining),
        )

    def _eligibility_unavailable(self) -> EligibilityResult:
        return EligibilityResult(
            can_submit=False,
            hours_remaining=math.ceil(self.cooldown_hours),
            message=MSG_ELIGIBILITY_UNAVAILABLE,
        )

    async def _claim_cooldown(
        self, user_id: str, grid_id: str, now: datetime, timeout: Optional[float]
    ) -> bool:
        """
        Record `now` as the user's last submission for the cell, but only if
        no active cooldown exists. Returns False when another submission by
        the same user got there first.
        """
        doc = cooldown_document(user_id, grid_id, now)
        cutoff = now - timedelta(hours=self.cooldown_hours)

        result = await self._call(
            self._cooldowns.replace_one({"_id": doc["_id"], "lastSubmittedAt": {"$lte": cutoff}}, doc),
            timeout,
        )
        if result.matched_count == 1:
            return True

        try:
            await self._call(self._cooldowns.insert_one(doc), timeout)
        except DuplicateKeyError:
            return False
        return True

    # ═══════════════════════════════════════════════════════════
    # Cell counts (server-side atomic increment)
    # ═══════════════════════════════════════════════════════════

    async def _update_area_counts(
        self, grid_id: str, is_safe: bool, delta: int, timeout: Optional[float]
    ) -> Optional[dict]:
        """
        Apply `delta` to the safe or unsafe count of a cell and return the
        committed document. The read-modify-write is a single `$inc` on the
        server, so concurrent submitters never conflict. A decrement never
        creates a cell or drives a count below zero; it returns None then.
        """
        field = "safeCount" if is_safe else "unsafeCount"
        update = area_count_update(is_safe, delta, self._now())

        if delta < 0:
            return await self._call(
                self._areas.find_one_and_update(
                    {"_id": grid_id, field: {"$gte": -delta}},
                    update,
                    return_document=ReturnDocument.AFTER,
                ),
                timeout,
            )

        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._call(
                    self._areas.find_one_and_update(
                        {"_id": grid_id},
                        update,
                        upsert=True,
                        return_document=ReturnDocument.AFTER,
                    ),
                    timeout,
                )
            except DuplicateKeyError:
                # Two upserts raced to create the cell; the loser retries as an update
                logger.debug(f"Cell {grid_id} created concurrently (attempt {attempt})")

        raise TransactionConflictError(
            f"cell {grid_id} still contended after {self.max_retries} attempts"
        )

    async def _revert_area_count(self, grid_id: str, is_safe: bool, timeout: Optional[float]) -> None:
        try:
            await self._update_area_counts(grid_id, is_safe, -1, timeout)
        except TransientStoreError as e:
            logger.error(f"Could not revert count on {grid_id}; counts ahead of cooldowns by one: {e}")

    async def _append_report(self, report: dict, timeout: Optional[float]) -> bool:
        # At-least-once: a retried insert may duplicate a history entry
        for attempt in range(1, REPORT_APPEND_ATTEMPTS + 1):
            try:
                await self._call(self._reports.insert_one(dict(report)), timeout)
                return True
            except TransientStoreError as e:
                logger.warning(f"Report append failed for {report['gridId']} (attempt {attempt}): {e}")
        return False

    # ═══════════════════════════════════════════════════════════
    # Submit
    # ═══════════════════════════════════════════════════════════

    async def submit_feedback(
        self,
        user_id: str,
        lat: float,
        lng: float,
        is_safe: bool,
        experience_text: Optional[str] = None,
        ratings: Optional[SafetyRatings] = None,
        timeout: Optional[float] = None,
    ) -> FeedbackResult:
        """
        Rate the cell containing (lat, lng) as safe or unsafe.

        Order of writes: cell counts (atomic $inc) → cooldown record →
        history report. If the cooldown cannot be recorded the count change
        is reverted, so a successful call always moves both together.
        """
        if not user_id:
            return FeedbackResult(success=False, message=MSG_LOGIN_REQUIRED)

        try:
            grid_id = make_grid_id(lat, lng)
        except ValueError:
            return FeedbackResult(success=False, message="Invalid coordinates.")

        eligibility = await self.check_eligibility(user_id, grid_id, timeout)
        if not eligibility.can_submit:
            logger.info(f"Feedback from {user_id} on {grid_id} denied: {eligibility.message}")
            return FeedbackResult(success=False, message=eligibility.message, grid_id=grid_id)

        try:
            area = await self._update_area_counts(grid_id, is_safe, 1, timeout)
            now = self._now()

            try:
                claimed = await self._claim_cooldown(user_id, grid_id, now, timeout)
            except TransientStoreError:
                await self._revert_area_count(grid_id, is_safe, timeout)
                raise

            if not claimed:
                # A parallel submission by the same user won the cooldown
                await self._revert_area_count(grid_id, is_safe, timeout)
                hours = math.ceil(self.cooldown_hours)
                return FeedbackResult(success=False, message=cooldown_message(hours), grid_id=grid_id)

            report = area_report_document(grid_id, user_id, is_safe, experience_text, ratings, now)
            if not await self._append_report(report, timeout):
                logger.error(f"History report for {user_id}@{grid_id} dropped; counts and cooldown committed")

        except TransientStoreError as e:
            logger.error(f"Error submitting safety feedback for {grid_id}: {e}")
            return FeedbackResult(success=False, message=MSG_SUBMIT_FAILED)

        new_score = calculate_area_score(area.get("safeCount", 0), area.get("unsafeCount", 0))
        logger.info(f"{user_id} marked {grid_id} {'safe' if is_safe else 'unsafe'} → score {new_score}")
        return FeedbackResult(
            success=True,
            message="Thank you! Area marked as safe." if is_safe else "Thank you! Area marked as unsafe. Stay safe!",
            grid_id=grid_id,
            new_score=new_score,
        )

    # ═══════════════════════════════════════════════════════════
    # Route integration
    # ═══════════════════════════════════════════════════════════

    async def route_community_score(
        self, points: Iterable[tuple[float, float]], timeout: Optional[float] = None
    ) -> RouteCommunityScore:
        """
        Mean community score over the unique cells a route crosses.

        covered_grids counts cells with at least one report, so callers can
        tell "safe because informed" from "safe because unknown".
        """
        grid_ids = unique_grid_ids(points)
        if not grid_ids:
            return RouteCommunityScore(score=NEUTRAL_SCORE, covered_grids=0, total_grids=0)

        data = await self.get_multiple_area_data(grid_ids, timeout)

        total_score = 0
        covered = 0
        for d in data.values():
            if d is None or d.safe_count + d.unsafe_count == 0:
                total_score += NEUTRAL_SCORE
                continue
            total_score += calculate_area_score(d.safe_count, d.unsafe_count)
            covered += 1

        return RouteCommunityScore(
            score=round_half_up(total_score / len(grid_ids)),
            covered_grids=covered,
            total_grids=len(grid_ids),
        )

    async def route_community_score_from_polyline(
        self, encoded: str, sample_interval: int = 5, timeout: Optional[float] = None
    ) -> RouteCommunityScore:
        return await self.route_community_score(decode_route_points(encoded, sample_interval), timeout)

    # ═══════════════════════════════════════════════════════════
    # App feedback (once per user)
    # ═══════════════════════════════════════════════════════════

    async def get_app_feedback(self, user_id: str, timeout: Optional[float] = None) -> Optional[AppFeedback]:
        doc = await self._call(self._app_feedbacks.find_one({"_id": user_id}), timeout)
        if doc is None:
            return None
        return AppFeedback(
            user_id=doc["userId"],
            rating=doc["rating"],
            feedback_text=doc.get("feedbackText", ""),
            timestamp=doc["timestamp"],
        )

    async def submit_app_feedback(
        self, user_id: str, rating: int, feedback_text: str = "", timeout: Optional[float] = None
    ) -> AppFeedbackResult:
        if not user_id:
            return AppFeedbackResult(success=False, message=MSG_LOGIN_REQUIRED)

        doc = app_feedback_document(user_id, rating, feedback_text, self._now())
        try:
            await self._call(self._app_feedbacks.insert_one(doc), timeout)
        except DuplicateKeyError:
            return AppFeedbackResult(success=False, message="You have already submitted your feedback. Thank you!")
        except TransientStoreError as e:
            logger.error(f"Error submitting app feedback for {user_id}: {e}")
            return AppFeedbackResult(success=False, message=MSG_SUBMIT_FAILED)

        return AppFeedbackResult(success=True, message="Thank you for your valuable feedback!")
