"""Moderatable content kinds and the unified review feed.

Businesses, jobs and offers share one moderation shape: a tri-state ``status``
(pending, approved, rejected), an independent ``is_active`` flag and an
optional ``rejection_reason``. Each kind is described once by a
``ContentTable`` so the repository can run approve, reject, toggle and feed
queries generically, dispatching on the ``ContentKind`` tag.

Any status may move to any other status by admin action. Moderating a row
never cascades: rejecting a business leaves its jobs and offers untouched.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

PostStatus = Literal["pending", "approved", "rejected"]
ALL_FILTER = "all"


class UnknownContentTypeError(ValueError):
    """Raised when a content type tag is missing or not recognized."""


class ContentKind(str, Enum):
    BUSINESS = "business"
    JOB = "job"
    OFFER = "offer"

    @property
    def feed_tag(self) -> str:
        # The admin feed has always called businesses "listings".
        if self is ContentKind.BUSINESS:
            return "listing"
        return self.value

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True, slots=True)
class ContentTable:
    kind: ContentKind
    table: str
    alias: str
    title_column: str
    business_id_column: str
    # FROM clause that exposes the row as ``alias``, its business as ``b``
    # and the business category as ``c``.
    source_sql: str

    def column(self, name: str) -> str:
        return f"{self.alias}.{name}"


CONTENT_TABLES: dict[ContentKind, ContentTable] = {
    ContentKind.BUSINESS: ContentTable(
        kind=ContentKind.BUSINESS,
        table="businesses",
        alias="b",
        title_column="name",
        business_id_column="id",
        source_sql="businesses b left join categories c on c.id = b.category_id",
    ),
    ContentKind.JOB: ContentTable(
        kind=ContentKind.JOB,
        table="jobs",
        alias="j",
        title_column="title",
        business_id_column="business_id",
        source_sql=(
            "jobs j "
            "left join businesses b on b.id = j.business_id "
            "left join categories c on c.id = b.category_id"
        ),
    ),
    ContentKind.OFFER: ContentTable(
        kind=ContentKind.OFFER,
        table="offers",
        alias="o",
        title_column="title",
        business_id_column="business_id",
        source_sql=(
            "offers o "
            "left join businesses b on b.id = o.business_id "
            "left join categories c on c.id = b.category_id"
        ),
    ),
}

FEED_ORDER: tuple[ContentKind, ...] = (ContentKind.BUSINESS, ContentKind.JOB, ContentKind.OFFER)

_TYPE_ALIASES: dict[str, ContentKind] = {
    "business": ContentKind.BUSINESS,
    "listing": ContentKind.BUSINESS,
    "job": ContentKind.JOB,
    "offer": ContentKind.OFFER,
}


def resolve_content_kind(value: str | None) -> ContentKind:
    normalized = value.strip().lower() if isinstance(value, str) else ""
    kind = _TYPE_ALIASES.get(normalized)
    if kind is None:
        raise UnknownContentTypeError("Post type is required (business, job, or offer).")
    return kind


def kinds_for_type_filter(value: str | None) -> list[ContentKind]:
    """Kinds the review feed should query; an unrecognised type matches none."""
    if value is None or not value.strip() or value.strip().lower() == ALL_FILTER:
        return list(FEED_ORDER)
    kind = _TYPE_ALIASES.get(value.strip().lower())
    return [kind] if kind is not None else []


@dataclass(frozen=True, slots=True)
class ModerationDecision:
    status: PostStatus
    rejection_reason: str | None = None

    @classmethod
    def approve(cls) -> ModerationDecision:
        return cls(status="approved", rejection_reason=None)

    @classmethod
    def reject(cls, reason: str | None = None) -> ModerationDecision:
        normalized = reason.strip() if isinstance(reason, str) else None
        return cls(status="rejected", rejection_reason=normalized or None)


@dataclass(slots=True)
class PostFilters:
    status: str | None = None
    type: str | None = None
    search: str | None = None
    page: int = 1
    limit: int = 20

    @property
    def status_condition(self) -> str | None:
        if not self.status or self.status == ALL_FILTER:
            return None
        return self.status

    @property
    def search_term(self) -> str | None:
        if self.search is None:
            return None
        stripped = self.search.strip()
        return stripped or None

    @property
    def offset(self) -> int:
        return (max(1, self.page) - 1) * self.limit


def merge_post_feeds(feeds: Iterable[list[dict[str, Any]]]) -> list[dict[str, Any]]:
    """Concatenate per-kind feeds and order them newest first.

    The sort is stable, so rows sharing a ``created_at`` keep the order in
    which their kinds were queried.
    """
    posts = [post for feed in feeds for post in feed]
    posts.sort(key=lambda post: post["created_at"], reverse=True)
    return posts
