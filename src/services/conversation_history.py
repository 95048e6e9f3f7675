"""Recency grouping and pagination for the conversation list.

Conversations are sorted most-recent first, paginated, and then only the
visible page is grouped into day-aligned periods.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional

from src.orchestrator.models.conversation import Conversation, utc_now

DEFAULT_PAGE_SIZE = 20


class TimePeriod(str, Enum):
    """Recency buckets, most recent first."""

    today = "today"
    yesterday = "yesterday"
    last7days = "last7days"
    last30days = "last30days"
    older = "older"


PERIOD_LABELS: dict[TimePeriod, str] = {
    TimePeriod.today: "Today",
    TimePeriod.yesterday: "Yesterday",
    TimePeriod.last7days: "Previous 7 Days",
    TimePeriod.last30days: "Previous 30 Days",
    TimePeriod.older: "Older",
}


def period_boundaries(now: datetime) -> list[tuple[TimePeriod, datetime]]:
    """Lower bound of each bucket, evaluated most-recent first.

    Boundaries are aligned to midnight of ``now`` in its own timezone.
    """
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return [
        (TimePeriod.today, today),
        (TimePeriod.yesterday, today - timedelta(days=1)),
        (TimePeriod.last7days, today - timedelta(days=7)),
        (TimePeriod.last30days, today - timedelta(days=30)),
    ]


def classify(updated_at: datetime, now: datetime) -> TimePeriod:
    """Return the first bucket whose lower bound the timestamp meets."""
    for period, lower_bound in period_boundaries(now):
        if updated_at >= lower_bound:
            return period
    return TimePeriod.older


def group_conversations_by_time(
    conversations: Iterable[Conversation],
    now: Optional[datetime] = None,
) -> dict[TimePeriod, list[Conversation]]:
    """Partition conversations into recency buckets.

    Input order is preserved within each bucket.

    Args:
        conversations: Conversations, normally already sorted by recency.
        now: Reference time. Defaults to the current UTC time.

    Returns:
        Dict with every TimePeriod as a key, in most-recent-first order.
    """
    now = now or utc_now()
    groups: dict[TimePeriod, list[Conversation]] = {period: [] for period in TimePeriod}
    for conversation in conversations:
        groups[classify(conversation.updated_at, now)].append(conversation)
    return groups


def sort_by_recency(conversations: Iterable[Conversation]) -> list[Conversation]:
    """Sort most recently updated first."""
    return sorted(conversations, key=lambda c: c.updated_at, reverse=True)


@dataclass
class ConversationGroup:
    """One non-empty recency bucket of the visible page."""

    period: TimePeriod
    label: str
    conversations: list[Conversation] = field(default_factory=list)


@dataclass
class ConversationPage:
    """Visible slice of the conversation list.

    Attributes:
        groups: Non-empty recency groups, most recent first.
        has_more: Whether "load more" would reveal additional conversations.
        total_count: Number of conversations in the full list.
        visible_count: Number of conversations currently shown.
    """

    groups: list[ConversationGroup]
    has_more: bool
    total_count: int
    visible_count: int


class ConversationPaginator:
    """Tracks how many conversations are revealed.

    "Load more" reveals another page without re-sorting; the list order
    is whatever the caller supplies.
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._page_size = page_size
        self._visible_count = page_size

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def visible_count(self) -> int:
        return self._visible_count

    def load_more(self) -> int:
        """Reveal one more page. Returns the new visible count."""
        self._visible_count += self._page_size
        return self._visible_count

    def reset(self) -> None:
        self._visible_count = self._page_size

    def page(
        self,
        conversations: list[Conversation],
        now: Optional[datetime] = None,
    ) -> ConversationPage:
        """Group the visible slice of ``conversations``."""
        visible = conversations[: self._visible_count]
        grouped = group_conversations_by_time(visible, now)
        groups = [
            ConversationGroup(period=period, label=PERIOD_LABELS[period], conversations=items)
            for period, items in grouped.items()
            if items
        ]
        return ConversationPage(
            groups=groups,
            has_more=self._visible_count < len(conversations),
            total_count=len(conversations),
            visible_count=len(visible),
        )
