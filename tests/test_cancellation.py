import pytest

from anime_sync.core.cancellation import CancellationToken, RequestSlots
from anime_sync.core.errors import Cancelled


def test_token_cancel():
    t = CancellationToken()
    t.raise_if_cancelled()
    t.cancel()
    assert t.cancelled
    with pytest.raises(Cancelled):
        t.raise_if_cancelled()


def test_begin_supersedes_previous_request():
    slots = RequestSlots()
    first = slots.begin("detail", "one-piece-100")
    second = slots.begin("detail", "one-piece-100")
    assert first.cancelled
    assert not second.cancelled
    assert slots.outstanding() == 1


def test_slots_are_per_view_and_key():
    slots = RequestSlots()
    a = slots.begin("detail", "a")
    b = slots.begin("detail", "b")
    c = slots.begin("episodes", "a")
    assert not (a.cancelled or b.cancelled or c.cancelled)
    assert slots.outstanding() == 3


def test_finish_only_releases_own_slot():
    slots = RequestSlots()
    old = slots.begin("detail", "x")
    new = slots.begin("detail", "x")
    slots.finish("detail", "x", old)
    assert slots.outstanding() == 1
    slots.finish("detail", "x", new)
    assert slots.outstanding() == 0
