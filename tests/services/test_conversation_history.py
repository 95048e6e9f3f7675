"""Tests for recency grouping and pagination of the conversation list."""

from datetime import timedelta

import pytest

from src.orchestrator.models.conversation import Conversation
from src.services.conversation_history import (
    PERIOD_LABELS,
    ConversationPaginator,
    TimePeriod,
    classify,
    group_conversations_by_time,
    sort_by_recency,
)


def _conv(conversation_id: str, updated_at) -> Conversation:
    return Conversation(id=conversation_id, updated_at=updated_at, created_at=updated_at)


class TestClassify:
    """Day-aligned bucket boundaries (now = 2025-03-14 15:00 UTC)."""

    def test_today_starts_at_midnight(self, fixed_now):
        midnight = fixed_now.replace(hour=0, minute=0)
        assert classify(midnight, fixed_now) == TimePeriod.today
        assert classify(midnight - timedelta(microseconds=1), fixed_now) == TimePeriod.yesterday

    def test_yesterday_lower_bound(self, fixed_now):
        yesterday_midnight = fixed_now.replace(hour=0) - timedelta(days=1)
        assert classify(yesterday_midnight, fixed_now) == TimePeriod.yesterday
        assert classify(yesterday_midnight - timedelta(seconds=1), fixed_now) == TimePeriod.last7days

    def test_seven_day_bound(self, fixed_now):
        bound = fixed_now.replace(hour=0) - timedelta(days=7)
        assert classify(bound, fixed_now) == TimePeriod.last7days
        assert classify(bound - timedelta(seconds=1), fixed_now) == TimePeriod.last30days

    def test_thirty_day_bound(self, fixed_now):
        bound = fixed_now.replace(hour=0) - timedelta(days=30)
        assert classify(bound, fixed_now) == TimePeriod.last30days
        assert classify(bound - timedelta(seconds=1), fixed_now) == TimePeriod.older

    def test_future_timestamps_are_today(self, fixed_now):
        assert classify(fixed_now + timedelta(hours=2), fixed_now) == TimePeriod.today


class TestGroupConversationsByTime:
    def test_every_period_present_in_order(self, fixed_now):
        groups = group_conversations_by_time([], fixed_now)
        assert list(groups) == list(TimePeriod)
        assert all(items == [] for items in groups.values())

    def test_preserves_input_order(self, fixed_now):
        a = _conv("a", fixed_now - timedelta(hours=1))
        b = _conv("b", fixed_now - timedelta(hours=2))
        c = _conv("c", fixed_now - timedelta(days=3))
        groups = group_conversations_by_time([a, b, c], fixed_now)
        assert [x.id for x in groups[TimePeriod.today]] == ["a", "b"]
        assert [x.id for x in groups[TimePeriod.last7days]] == ["c"]

    def test_labels(self):
        assert PERIOD_LABELS[TimePeriod.last7days] == "Previous 7 Days"
        assert set(PERIOD_LABELS) == set(TimePeriod)


class TestSortByRecency:
    def test_newest_first(self, fixed_now):
        older = _conv("older", fixed_now - timedelta(days=1))
        newer = _conv("newer", fixed_now)
        assert [c.id for c in sort_by_recency([older, newer])] == ["newer", "older"]


class TestConversationPaginator:
    def _many(self, count, now):
        return [_conv(f"c{i}", now - timedelta(hours=i)) for i in range(count)]

    def test_first_page_is_twenty(self, fixed_now):
        page = ConversationPaginator().page(self._many(25, fixed_now), fixed_now)
        assert page.visible_count == 20
        assert page.total_count == 25
        assert page.has_more is True

    def test_load_more_reveals_next_page(self, fixed_now):
        conversations = self._many(45, fixed_now)
        paginator = ConversationPaginator()

        assert paginator.load_more() == 40
        page = paginator.page(conversations, fixed_now)
        assert page.visible_count == 40
        assert page.has_more is True

        paginator.load_more()
        page = paginator.page(conversations, fixed_now)
        assert page.visible_count == 45
        assert page.has_more is False

    def test_exactly_one_page(self, fixed_now):
        page = ConversationPaginator().page(self._many(20, fixed_now), fixed_now)
        assert page.has_more is False

    def test_only_visible_slice_is_grouped(self, fixed_now):
        recent = self._many(3, fixed_now)
        old = [_conv("ancient", fixed_now - timedelta(days=90))]
        page = ConversationPaginator(page_size=3).page(recent + old, fixed_now)
        assert [g.period for g in page.groups] == [TimePeriod.today]
        assert page.groups[0].label == "Today"

    def test_empty_groups_are_omitted(self, fixed_now):
        conversations = [
            _conv("t", fixed_now),
            _conv("o", fixed_now - timedelta(days=60)),
        ]
        page = ConversationPaginator().page(conversations, fixed_now)
        assert [g.period for g in page.groups] == [TimePeriod.today, TimePeriod.older]

    def test_reset(self):
        paginator = ConversationPaginator(page_size=5)
        paginator.load_more()
        paginator.reset()
        assert paginator.visible_count == 5

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            ConversationPaginator(page_size=0)
