import pytest

from secretshare.namespace_exclusions import (
    EXCLUSION_ANN_KEY,
    EnqueueDueToNamespaceChange,
    Namespace,
    make_namespace_wildcard_exclusion_check,
    ns_has_exclusion_annotation,
)
from secretshare.tracker import NamespacedName


class FakeClient:
    def __init__(self, *namespaces):
        self.namespaces = {ns.name: ns for ns in namespaces}

    def get_namespace(self, name):
        try:
            return self.namespaces[name]
        except KeyError:
            raise LookupError(f'namespaces "{name}" not found') from None


def excluded(name):
    return Namespace(name=name, annotations={EXCLUSION_ANN_KEY: ""})


def test_literal_annotation_key_is_recognised():
    ns = Namespace(
        "ns", {"secretgen.carvel.dev/excluded-from-wildcard-matching": ""}
    )
    assert ns_has_exclusion_annotation(ns) is True


@pytest.mark.parametrize(
    "annotations, expected",
    [
        ({}, False),
        ({EXCLUSION_ANN_KEY: ""}, True),
        ({EXCLUSION_ANN_KEY: "false"}, True),
        ({"other": "x"}, False),
    ],
)
def test_ns_has_exclusion_annotation(annotations, expected):
    assert ns_has_exclusion_annotation(Namespace("ns", annotations)) is expected


def test_check_uses_client():
    check = make_namespace_wildcard_exclusion_check(
        FakeClient(excluded("hidden"), Namespace("open"))
    )
    assert check("hidden") is True
    assert check("open") is False


def test_check_missing_namespace_not_excluded():
    check = make_namespace_wildcard_exclusion_check(FakeClient())
    assert check("missing") is False


def requests_for(obj):
    return [NamespacedName(obj.name, "s1"), NamespacedName(obj.name, "s2")]


def test_update_enqueues_when_annotation_added():
    handler = EnqueueDueToNamespaceChange(requests_for)
    queue = set()
    handler.update(Namespace("ns"), excluded("ns"), queue)
    assert queue == {NamespacedName("ns", "s1"), NamespacedName("ns", "s2")}


def test_update_enqueues_when_annotation_removed():
    handler = EnqueueDueToNamespaceChange(requests_for)
    queue = set()
    handler.update(excluded("ns"), Namespace("ns"), queue)
    assert len(queue) == 2


@pytest.mark.parametrize(
    "old, new",
    [
        (Namespace("ns"), Namespace("ns", {"a": "b"})),
        (excluded("ns"), excluded("ns")),
    ],
)
def test_update_skips_when_annotation_unchanged(old, new):
    handler = EnqueueDueToNamespaceChange(requests_for)
    queue = set()
    handler.update(old, new, queue)
    assert queue == set()


def test_update_enqueues_for_other_objects():
    handler = EnqueueDueToNamespaceChange(lambda obj: [obj])
    queue = set()
    handler.update("old", "new", queue)
    assert queue == {"new"}


def test_other_events_do_nothing():
    calls = []

    def to_requests(obj):
        calls.append(obj)
        return [obj]

    handler = EnqueueDueToNamespaceChange(to_requests)
    queue = set()
    ns = excluded("ns")
    handler.create(ns, queue)
    handler.delete(ns, queue)
    handler.generic(ns, queue)
    assert queue == set()
    assert calls == []