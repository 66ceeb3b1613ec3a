"""Unit tests for QueryEngine."""
from datetime import date

import pytest

from catalog.catalog_store import CatalogStore
from catalog.mutation_pipeline import MutationPipeline
from catalog.permissions import Authorizer
from catalog.query_engine import QueryEngine


@pytest.fixture
def engine(catalog):
    return QueryEngine(catalog, today=lambda: date(2024, 5, 5))


def ids(result):
    return [event.id for event in result.events]


def test_country_filter_example(engine):
    """Test only US events overlapping May 2024 are returned, sorted."""
    result = engine.query({'start': '2024-05-01', 'stop': '2024-05-31', 'country': 'US'})

    assert ids(result) == [3, 1]
    assert result.total_count == 2


def test_wildcard_country_is_superset(engine):
    params = {'start': '2024-05-01', 'stop': '2024-05-31'}

    filtered = engine.query(dict(params, country='US'))
    unfiltered = engine.query(params)

    assert ids(unfiltered) == [3, 1, 2]
    assert set(ids(filtered)) <= set(ids(unfiltered))


def test_default_window_starts_three_days_back(engine):
    """Test the default start is today minus three days and stop is open."""
    result = engine.query()

    # event 1 ended 2024-05-01, before the 2024-05-02 window start
    assert ids(result) == [3, 2, 4]


def test_center_filter(engine):
    result = engine.query({'start': '2024-01-01', 'center': 'wroclaw'})

    assert ids(result) == [2]


def test_unknown_country_matches_nothing(engine):
    result = engine.query({'start': '2024-01-01', 'country': 'FR'})

    assert result.total_count == 0
    assert result.events == []


def test_query_resolves_centers(catalog, engine):
    """Test centers of matching events are loaded as a side effect."""
    assert catalog.centers.peek('wroclaw') is None

    engine.query({'start': '2024-01-01'})

    assert catalog.centers.peek('wroclaw') is not None


def test_results_are_augmented(engine):
    result = engine.query({'start': '2024-05-10', 'stop': '2024-05-10'})

    event = result.events[0]
    assert event.id == 2
    assert event.date_range == 'May 10-12'
    assert event.fullcity == 'Wroclaw, Poland'
    assert result.to_dict()['events'][0]['weekdayRange'] == 'Fri-Sun'


@pytest.fixture
def busy_engine(seeded_store, put_document):
    """Catalog with 120 events on the same day in mixed id order."""
    for event_id in range(150, 30, -1):
        put_document(f"current/{event_id:06d}.json", {
            'id': event_id,
            'startDate': '2024-09-01',
            'title': f"Event {event_id}",
            'center': 'x',
        })
    catalog = CatalogStore(seeded_store)
    catalog.load()
    return QueryEngine(catalog, today=lambda: date(2024, 8, 1))


def test_same_day_events_ordered_by_id(busy_engine):
    result = busy_engine.query({'start': '2024-09-01', 'stop': '2024-09-01', 'count': '5'})

    assert ids(result) == [31, 32, 33, 34, 35]


@pytest.mark.parametrize('skip, count, expected_len', [
    (None, None, 100),
    ('0', '500', 100),
    ('0', '-7', 7),
    ('0', '0', 100),
    ('0', 'many', 100),
    ('115', '10', 5),
    ('200', '10', 0),
    ('-5', '3', 3),
    ('0', '1.5', 1),
    ('0', '12abc', 12),
    ('2.9', ' 4', 4),
])
def test_pagination_bounds(busy_engine, skip, count, expected_len):
    """Test page size never exceeds the clamp and totals ignore paging."""
    params = {'start': '2024-09-01'}
    if skip is not None:
        params['skip'] = skip
    if count is not None:
        params['count'] = count

    result = busy_engine.query(params)

    assert len(result.events) == expected_len
    assert result.total_count == 120


def test_skip_offsets_page(busy_engine):
    result = busy_engine.query({'start': '2024-09-01', 'skip': '10', 'count': '2'})

    assert ids(result) == [41, 42]


def test_get_event_inherits_center_address(catalog, engine):
    """Test an event without address shows its center's name and address."""
    event = engine.get_event(1)

    assert event.address == '1 Main St'
    assert event.name == 'X Center'
    assert event.weekday_range == 'Wed'
    assert event.fullcity == 'Springfield, United States'


def test_get_event_keeps_own_address(engine):
    event = engine.get_event(2)

    assert event.address == 'Karpacz'
    assert event.name == 'Mountain retreat'


def test_get_event_unknown_id(engine, put_document):
    """Test documents missing from the index are not served."""
    put_document('current/000099.json', {'id': 99, 'center': 'x'})

    assert engine.get_event(99) is None
    assert engine.get_event(12345) is None


def test_get_event_served_from_cache(catalog, engine, put_document):
    """Test a cached document is served even after an external change."""
    engine.get_event(1)
    put_document('current/000001.json', {'id': 1, 'center': 'x', 'title': 'Changed'})
    catalog.store.poke()

    assert engine.get_event(1).title == 'Meditation evening'


def test_fractional_skip_truncates(busy_engine):
    result = busy_engine.query({'start': '2024-09-01', 'skip': '10.7', 'count': '2'})

    assert ids(result) == [41, 42]


def test_query_after_event_saved_without_start_date(catalog, engine):
    """Test a null start date is stored empty and queries still compare."""
    pipeline = MutationPipeline(catalog, Authorizer([]))
    result = pipeline.save_event({'center': 'x', 'startDate': None, 'title': 'Undated'}, 'alice')

    assert result.ok
    assert result.record.start_date == ''

    queried = engine.query({'start': '2024-01-01'})
    assert queried.total_count == 4
    assert 5 not in ids(queried)
