"""Test helper utilities."""

from tests.helpers.fake_repository import FakeContentRepository, FakeResponder

__all__ = [
    "FakeContentRepository",
    "FakeResponder",
]
