"""Unit tests for partial-update validation."""
import copy

import pytest

from catalog.field_validator import (
    apply_center_changes,
    apply_event_changes,
    valid_date,
    valid_time,
)
from catalog.models import Center, FullEvent


@pytest.fixture
def stored_event():
    return FullEvent(
        id=7,
        start_date='2024-05-01',
        title='Original title',
        center='x',
        start_time='19:00',
        description='Original description'
    )


@pytest.fixture
def center():
    return Center(
        id='x',
        name='X Center',
        address='1 Main St',
        country='US',
        users={'alice'},
        program='Old program'
    )


class TestFieldFormats:
    """Test cases for date and time formats."""

    @pytest.mark.parametrize('value', [None, '', '2024-05-01', '2999-12-31'])
    def test_valid_dates(self, value):
        assert valid_date(value)

    @pytest.mark.parametrize('value', [
        '1999-05-01', '2024-5-1', '05/01/2024', '2024-05-01T10:00', 20240501, [],
    ])
    def test_invalid_dates(self, value):
        assert not valid_date(value)

    @pytest.mark.parametrize('value', [None, '', '20:00', '07:30'])
    def test_valid_times(self, value):
        assert valid_time(value)

    @pytest.mark.parametrize('value', ['8:00', '8pm', '20:00:00', 2000])
    def test_invalid_times(self, value):
        assert not valid_time(value)


class TestApplyEventChanges:
    """Test cases for apply_event_changes."""

    def test_applies_whitelisted_fields(self, stored_event):
        """Test recognized fields are copied and others ignored."""
        error = apply_event_changes(stored_event, {
            'center': 'x',
            'title': 'New title',
            'endDate': '2024-05-03',
            'startTime': '20:00',
            'users': ['mallory'],
            'weekdayRange': 'Mon',
        })

        assert error == ''
        assert stored_event.title == 'New title'
        assert stored_event.end_date == '2024-05-03'
        assert stored_event.start_time == '20:00'
        assert not hasattr(stored_event, 'users')
        assert stored_event.weekday_range is None

    def test_new_event_takes_center(self):
        """Test a fresh record accepts its first center."""
        event = FullEvent(id=1)

        assert apply_event_changes(event, {'center': 'x', 'title': 'T'}) == ''
        assert event.center == 'x'

    @pytest.mark.parametrize('delta, message', [
        ({'center': 'y'}, 'cannot change event center'),
        ({}, 'cannot change event center'),
        ({'center': 'x', 'startDate': '2024/05/01'}, 'invalid start date'),
        ({'center': 'x', 'endDate': 'soon'}, 'invalid end date'),
        ({'center': 'x', 'startTime': '7pm'}, 'invalid start time'),
        ({'center': 'x', 'title': 'a' * 201}, 'title too long'),
        ({'center': 'x', 'address': 'a' * 201}, 'address too long'),
        ({'center': 'x', 'name': 'a' * 201}, 'name too long'),
        ({'center': 'x', 'description': 'a' * 4001}, 'description too long'),
    ])
    def test_rejects_invalid_field(self, stored_event, delta, message):
        """Test each constraint reports its own failure."""
        assert apply_event_changes(stored_event, delta) == message

    def test_failure_leaves_record_untouched(self, stored_event):
        """Test a failing delta applies none of its valid fields."""
        before = copy.deepcopy(stored_event)

        error = apply_event_changes(stored_event, {
            'center': 'x',
            'title': 'Fine title',
            'startDate': '2024-06-01',
            'description': 'a' * 4001,
        })

        assert error == 'description too long'
        assert stored_event == before

    def test_first_failure_wins(self, stored_event):
        """Test validation stops at the first failing field."""
        error = apply_event_changes(stored_event, {
            'center': 'x',
            'startDate': 'bad',
            'title': 'a' * 300,
        })

        assert error == 'invalid start date'

    def test_null_text_fields_stored_empty(self, stored_event):
        """Test null dates and text become empty strings, null endDate stays unset."""
        error = apply_event_changes(stored_event, {
            'center': 'x',
            'startDate': None,
            'endDate': None,
            'title': None,
            'startTime': None,
        })

        assert error == ''
        assert stored_event.start_date == ''
        assert stored_event.title == ''
        assert stored_event.start_time == ''
        assert stored_event.end_date is None

    def test_limits_are_inclusive(self, stored_event):
        """Test values exactly at the limit are accepted."""
        error = apply_event_changes(stored_event, {
            'center': 'x',
            'title': 'a' * 200,
            'description': 'b' * 4000,
        })

        assert error == ''
        assert len(stored_event.title) == 200


class TestApplyCenterChanges:
    """Test cases for apply_center_changes."""

    def test_applies_and_stringifies(self, center):
        error = apply_center_changes(center, {
            'name': 'Renamed',
            'about': 42,
            'country': 'PL',
            'users': ['mallory'],
        })

        assert error == ''
        assert center.name == 'Renamed'
        assert center.about == '42'
        assert center.country == 'US'
        assert center.users == {'alice'}

    @pytest.mark.parametrize('delta, message', [
        ({'program': 'a' * 4001}, 'program too long'),
        ({'about': 'a' * 4001}, 'about too long'),
        ({'name': 'a' * 201}, 'name too long'),
        ({'address': 'a' * 201}, 'address too long'),
    ])
    def test_rejects_long_fields(self, center, delta, message):
        assert apply_center_changes(center, delta) == message

    def test_failure_leaves_center_untouched(self, center):
        """Test an earlier valid field is not applied when a later one fails."""
        before = copy.deepcopy(center)

        error = apply_center_changes(center, {
            'program': 'New program',
            'address': 'a' * 201,
        })

        assert error == 'address too long'
        assert center == before
