"""Shared fixtures for the content registry tests."""

from __future__ import annotations

from typing import Any

import pytest

from content_registry import BlockClock, ContentRegistry, FeeLedger, Result

CREATOR = "ST1CREATOR"
AUTHORITY = "ST2AUTH"
STRANGER = "ST2FAKE"


def content_hash(fill: int = 1) -> bytes:
    return bytes([fill]) * 32


def register(registry: ContentRegistry, caller: str = CREATOR, **overrides: Any) -> Result[int]:
    """Register a valid piece of content, overriding any field by keyword."""
    fields = {
        "content_hash": content_hash(1),
        "title": "Video",
        "description": "A test video",
        "ipfs_link": "ipfs://test",
        "price": 100,
        "royalty_rate": 10,
        "category": "video",
        "tags": ["tag1", "tag2"],
    }
    fields.update(overrides)
    return registry.register_content(caller, **fields)


@pytest.fixture
def clock() -> BlockClock:
    return BlockClock()


@pytest.fixture
def ledger() -> FeeLedger:
    return FeeLedger()


@pytest.fixture
def registry(clock: BlockClock, ledger: FeeLedger) -> ContentRegistry:
    """A fresh registry with no authority configured."""
    return ContentRegistry(clock=clock, fee_backend=ledger)


@pytest.fixture
def authorized_registry(registry: ContentRegistry) -> ContentRegistry:
    assert registry.set_authority(AUTHORITY)
    return registry
