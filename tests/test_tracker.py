from collections import Counter

from secretshare.tracker import NamespacedName, Tracker


def test_tracker_lifecycle():
    tracking1 = NamespacedName(namespace="ns1", name="tracking")
    tracking2 = NamespacedName(namespace="ns2", name="tracking")
    tracked1 = NamespacedName(namespace="ns3", name="tracked")
    tracked2 = NamespacedName(namespace="ns4", name="tracked")
    never_tracked = NamespacedName(namespace="ns4", name="nevertracked")

    tracker = Tracker()

    assert tracker.get_tracking(tracked1) == []
    assert tracker.get_tracking(tracked2) == []

    tracker.track(tracking1, tracked1, tracked2)
    tracker.track(tracking2, tracked1)

    assert Counter(tracker.get_tracking(tracked1)) == Counter([tracking1, tracking2])
    assert Counter(tracker.get_tracking(tracked2)) == Counter([tracking1])

    assert tracker.get_tracking(never_tracked) == []

    tracker.untrack_all(tracking1)
    assert tracker.get_tracking(tracked1) == [tracking2]
    assert tracker.get_tracking(tracked2) == []

    tracker.untrack_all(tracking2)
    assert tracker.get_tracking(tracked1) == []


def test_untrack_all_is_idempotent():
    tracker = Tracker()
    tracking = NamespacedName(namespace="ns1", name="a")
    tracked = NamespacedName(namespace="ns2", name="b")
    tracker.track(tracking, tracked)
    tracker.untrack_all(tracking)
    tracker.untrack_all(tracking)
    assert tracker.get_tracking(tracked) == []


def test_track_accumulates_across_calls():
    tracker = Tracker()
    tracking = NamespacedName(namespace="ns1", name="a")
    tracked1 = NamespacedName(namespace="ns2", name="b")
    tracked2 = NamespacedName(namespace="ns2", name="c")
    tracker.track(tracking, tracked1)
    tracker.track(tracking, tracked2)
    tracker.track(tracking, tracked2)
    assert tracker.get_tracking(tracked1) == [tracking]
    assert tracker.get_tracking(tracked2) == [tracking]