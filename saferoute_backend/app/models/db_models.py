"""
SafeRoute — MongoDB Document Models
Defines the document structures stored in MongoDB collections.
These are not ORM models (MongoDB is schema-less); the builders below are
the single place a stored document's shape is spelled out.

Keys are camelCase to stay compatible with documents written by the mobile client.

areas:                 {_id: gridId, safeCount, unsafeCount, lastUpdated, version}
user_grid_feedbacks:   {_id: "{userId}_{gridId}", userId, gridId, lastSubmittedAt}
area_reports:          {gridId, userId, isSafe, experienceText, ratings?, timestamp}
app_feedbacks:         {_id: userId, userId, rating, feedbackText, timestamp}
"""

from datetime import datetime
from typing import Optional

from app.models.schemas import SafetyRatings


def area_count_update(is_safe: bool, delta: int, now: datetime) -> dict:
    """Atomic `$inc` on one count; an upsert seeds the other count at zero."""
    field, other = ("safeCount", "unsafeCount") if is_safe else ("unsafeCount", "safeCount")
    return {
        "$inc": {field: delta, "version": 1},  # version bumped by every write
        "$set": {"lastUpdated": now},
        "$setOnInsert": {other: 0},
    }


def cooldown_key(user_id: str, grid_id: str) -> str:
    return f"{user_id}_{grid_id}"


def cooldown_document(user_id: str, grid_id: str, submitted_at: datetime) -> dict:
    return {
        "_id": cooldown_key(user_id, grid_id),
        "userId": user_id,
        "gridId": grid_id,
        "lastSubmittedAt": submitted_at,
    }


def area_report_document(
    grid_id: str,
    user_id: str,
    is_safe: bool,
    experience_text: Optional[str],
    ratings: Optional[SafetyRatings],
    timestamp: datetime,
) -> dict:
    """History entry; `ratings` is omitted entirely when the user gave none."""
    doc = {
        "gridId": grid_id,
        "userId": user_id,
        "isSafe": is_safe,
        "experienceText": (experience_text or "").strip(),
        "timestamp": timestamp,
    }
    if ratings is not None:
        doc["ratings"] = ratings.model_dump(by_alias=True)
    return doc


def app_feedback_document(user_id: str, rating: int, feedback_text: str, timestamp: datetime) -> dict:
    # _id is the user id: one app rating per user
    return {
        "_id": user_id,
        "userId": user_id,
        "rating": rating,
        "feedbackText": feedback_text.strip(),
        "timestamp": timestamp,
    }
