"""Tests for change classification against the sync ledger."""

from datetime import timedelta

from fco_backup.core.reconcile import (
    ALL_ENTRIES_NEW,
    DUPLICATE_ENTRIES,
    detect_changes,
    filter_new_entries,
    has_duplicates,
)
from fco_backup.core.types import FullResync, Incremental

from conftest import BASE_TIME, make_entry


def _feed(*entries):
    """Feed order is newest first."""
    return sorted(entries, key=lambda e: e.updated_at, reverse=True)


def test_all_entries_new_forces_full_resync():
    """Every feed entry newer than the ledger means updates may have been missed"""
    feed = _feed(make_entry("france", 10), make_entry("spain", 20), make_entry("italy", 30))

    result = detect_changes(feed, BASE_TIME)

    assert result == FullResync(ALL_ENTRIES_NEW)


def test_single_entry_feed_all_new():
    feed = [make_entry("france", 5)]
    assert detect_changes(feed, BASE_TIME) == FullResync(ALL_ENTRIES_NEW)


def test_duplicate_urls_force_full_resync():
    """Two new entries for the same page cannot be replayed individually"""
    feed = _feed(
        make_entry("old-one", -10),
        make_entry("france", 10),
        make_entry("germany", 15),
        make_entry("france", 20),
    )

    result = detect_changes(feed, BASE_TIME)

    assert result == FullResync(DUPLICATE_ENTRIES)


def test_all_new_takes_priority_over_duplicates():
    feed = _feed(make_entry("france", 10), make_entry("france", 20))
    assert detect_changes(feed, BASE_TIME) == FullResync(ALL_ENTRIES_NEW)


def test_incremental_is_oldest_first():
    older = make_entry("france", 10)
    newer = make_entry("spain", 20)
    feed = _feed(make_entry("italy", -30), make_entry("peru", -20), older, newer)

    result = detect_changes(feed, BASE_TIME)

    assert isinstance(result, Incremental)
    assert list(result.entries) == [older, newer]


def test_nothing_new_is_empty_incremental():
    feed = _feed(make_entry("italy", -30), make_entry("peru", -20))

    result = detect_changes(feed, BASE_TIME)

    assert result == Incremental(())
    assert result.is_empty


def test_empty_feed_is_no_work():
    result = detect_changes([], BASE_TIME)
    assert isinstance(result, Incremental)
    assert result.is_empty


def test_entry_at_exact_ledger_time_is_not_new():
    """Only strictly newer entries count"""
    feed = _feed(make_entry("france", 0), make_entry("spain", -5))
    assert filter_new_entries(feed, BASE_TIME) == []


def test_filter_reverses_feed_order():
    a, b, c = make_entry("a", 1), make_entry("b", 2), make_entry("c", 3)
    assert filter_new_entries([c, b, a], BASE_TIME) == [a, b, c]


def test_has_duplicates_ignores_distinct_urls():
    assert not has_duplicates([make_entry("france", 1), make_entry("spain", 2)])
    assert has_duplicates([make_entry("france", 1), make_entry("france", 2)])


def test_entry_without_html_link_counts_as_collision():
    entry = make_entry("france", 1)
    linkless = type(entry)(
        id="x",
        title="X",
        url="https://example.gov/x",
        updated_at=BASE_TIME + timedelta(minutes=2),
        links=(),
    )
    assert has_duplicates([entry, linkless])
