import pytest

from foodscan.categories import ClassificationSource
from foodscan.vision_pipeline.detection_store import DetectionSession
from foodscan.vision_pipeline.models import (
    BoundingBox,
    DetectionSource,
    ItemState,
    RawDetection,
    WordClassification,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(clock):
    session = DetectionSession(clock=clock)
    session.start_scanning()
    return session


def _detection(label, confidence=0.8, pending=False, **kwargs):
    return RawDetection(label=label, confidence=confidence, source=DetectionSource.LABEL, is_pending=pending, **kwargs)


def _verdict(word, is_food, category=None):
    return WordClassification(word=word, is_food=is_food, category=category, source=ClassificationSource.USDA, confidence=0.9)


def test_same_label_merges(session, clock):
    session.add_detection(_detection("Apple", 0.7))
    clock.now += 5
    session.add_detection(_detection("apple ", 0.9))

    assert len(session.items) == 1
    item = session.items[0]
    assert item.label == "Apple"
    assert item.count == 2
    assert item.confidence == 0.9
    assert item.first_seen_at == 1000.0
    assert item.last_seen_at == 1005.0


def test_merge_keeps_max_confidence_and_latest_box(session):
    first_box = BoundingBox(normalized_vertices=[(0.1, 0.1)])
    second_box = BoundingBox(normalized_vertices=[(0.5, 0.5)])
    session.add_detection(_detection("Banana", 0.9, bounding_box=first_box))
    session.add_detection(_detection("banana", 0.6, bounding_box=second_box))
    session.add_detection(_detection("BANANA", 0.5))

    item = session.items[0]
    assert item.confidence == 0.9
    assert item.bounding_box is second_box
    assert item.count == 3


def test_resolution_is_monotonic(session):
    session.add_detection(_detection("Tomato", pending=True))
    assert session.items[0].state == ItemState.PENDING

    session.add_detection(_detection("tomato", pending=False, category="Vegetables"))
    assert session.items[0].state == ItemState.RESOLVED
    assert session.items[0].category == "Vegetables"

    session.add_detection(_detection("tomato", pending=True))
    assert session.items[0].state == ItemState.RESOLVED


def test_resolve_pending_detections(session):
    session.add_detection(_detection("Tomato", pending=True))
    session.add_detection(_detection("Limestone", pending=True))
    session.add_detection(_detection("Gizmo", pending=True))
    session.add_detection(_detection("Apple", category="Fruits"))

    session.resolve_pending_detections({
        "tomato": _verdict("tomato", True, "Vegetables"),
        "limestone": _verdict("limestone", False),
        "apple": _verdict("apple", False),
    })

    by_label = {item.label: item for item in session.items}
    assert set(by_label) == {"Tomato", "Gizmo", "Apple"}
    assert by_label["Tomato"].state == ItemState.RESOLVED
    assert by_label["Tomato"].category == "Vegetables"
    assert by_label["Gizmo"].is_pending
    # Resolved items are never re-judged
    assert by_label["Apple"].category == "Fruits"


def test_unique_items_sorted_by_confidence_then_count(session):
    session.add_detection(_detection("Milk", 0.8))
    session.add_detection(_detection("Apple", 0.95))
    session.add_detection(_detection("Bread", 0.8))
    session.add_detection(_detection("bread", 0.7))

    assert [item.label for item in session.get_unique_items()] == ["Apple", "Bread", "Milk"]


def test_update_and_remove_item(session):
    item = session.add_detection(_detection("Aple", 0.8))

    session.update_item(item.id, label="Apple", category="Fruits")
    assert session.items[0].label == "Apple"
    assert session.items[0].category == "Fruits"

    with pytest.raises(ValueError):
        session.update_item(item.id, state=ItemState.PENDING)

    session.remove_item(item.id)
    assert session.items == []


def test_pending_counter_never_negative(session):
    session.increment_pending()
    session.decrement_pending()
    session.decrement_pending()
    assert session.pending_requests == 0


def test_restart_resets_pending_counter(session):
    session.increment_pending()
    session.stop_scanning()
    session.start_scanning()
    assert session.pending_requests == 0


def test_lifecycle(session, clock):
    session.add_detection(_detection("Apple"))
    clock.now += 42
    assert session.elapsed_seconds() == 42

    session.stop_scanning()
    assert not session.is_scanning
    assert not session.show_summary
    assert len(session.items) == 1

    session.show_summary_modal()
    assert session.show_summary

    session.start_scanning()
    assert session.items == []
    assert not session.show_summary

    session.set_error("camera unavailable")
    session.clear_session()
    assert session.error is None
    assert session.elapsed_seconds() == 0
