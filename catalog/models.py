"""Data models for the event catalog."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


@dataclass
class EventIndexEntry:
    """Minimal event summary kept in the index."""
    id: int
    start_date: str = ''
    title: str = ''
    center: str = ''
    end_date: Optional[str] = None

    def to_index_dict(self) -> Dict[str, Any]:
        """Serialize the indexed projection."""
        item = {
            'id': self.id,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'title': self.title,
            'center': self.center,
        }
        if item['endDate'] is None:
            del item['endDate']
        return item

    def summary(self) -> 'EventIndexEntry':
        """Project any event record down to its index entry."""
        return EventIndexEntry(
            id=self.id,
            start_date=self.start_date,
            title=self.title,
            center=self.center,
            end_date=self.end_date
        )

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> 'EventIndexEntry':
        return cls(
            id=int(item.get('id') or 0),
            start_date=item.get('startDate') or '',
            title=item.get('title') or '',
            center=item.get('center') or '',
            end_date=item.get('endDate') or None
        )


@dataclass
class EventListEntry(EventIndexEntry):
    """Index entry with display fields derived at read time."""
    fullcity: Optional[str] = None
    weekday_range: Optional[str] = None
    date_range: Optional[str] = None
    combined_range: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        item = self.to_index_dict()
        for key, value in (
            ('fullcity', self.fullcity),
            ('weekdayRange', self.weekday_range),
            ('dateRange', self.date_range),
            ('combinedRange', self.combined_range),
        ):
            if value is not None:
                item[key] = value
        return item


@dataclass
class FullEvent(EventListEntry):
    """Authoritative per-event document."""
    start_time: str = ''
    description: str = ''
    name: Optional[str] = None
    address: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        """
        Serialize the stored form of the event.

        Derived display fields are never written.
        """
        item = self.to_index_dict()
        item.update(self._detail_fields())
        return item

    def to_dict(self) -> Dict[str, Any]:
        item = super().to_dict()
        item.update(self._detail_fields())
        return item

    def _detail_fields(self) -> Dict[str, Any]:
        item = {
            'startTime': self.start_time,
            'description': self.description,
        }
        if self.name is not None:
            item['name'] = self.name
        if self.address is not None:
            item['address'] = self.address
        return item

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> 'FullEvent':
        return cls(
            id=int(item.get('id') or 0),
            start_date=item.get('startDate') or '',
            title=item.get('title') or '',
            center=item.get('center') or '',
            end_date=item.get('endDate') or None,
            start_time=item.get('startTime') or '',
            description=item.get('description') or '',
            name=item.get('name'),
            address=item.get('address')
        )


@dataclass
class Center:
    """Center owning events; the id doubles as its file name."""
    id: str
    name: str = ''
    address: str = ''
    country: str = ''
    users: Set[str] = field(default_factory=set)
    program: Optional[str] = None
    about: Optional[str] = None
    fullcity: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        item = {
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'country': self.country,
            'users': sorted(self.users),
        }
        for key in ('program', 'about', 'fullcity'):
            value = getattr(self, key)
            if value is not None:
                item[key] = value
        return item

    def public_view(self) -> Dict[str, Any]:
        """Fields visible to anonymous callers."""
        return {
            'id': self.id,
            'name': self.name,
            'country': self.country,
            'address': self.address,
        }

    @classmethod
    def from_dict(cls, item: Dict[str, Any], center_id: Optional[str] = None) -> 'Center':
        return cls(
            id=item.get('id') or center_id,
            name=item.get('name') or '',
            address=item.get('address') or '',
            country=item.get('country') or '',
            users=set(item.get('users') or []),
            program=item.get('program'),
            about=item.get('about'),
            fullcity=item.get('fullcity')
        )


@dataclass
class EventIndex:
    """Ordered event summaries plus the id counter."""
    events: List[EventIndexEntry] = field(default_factory=list)
    next_id: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'events': [entry.to_index_dict() for entry in self.events],
            'nextId': self.next_id,
        }

    @classmethod
    def from_dict(cls, item: Dict[str, Any]) -> 'EventIndex':
        return cls(
            events=[EventIndexEntry.from_dict(e) for e in item['events']],
            next_id=int(item['nextId'])
        )


@dataclass
class QueryResult:
    """One page of query results."""
    total_count: int
    events: List[EventListEntry]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalCount': self.total_count,
            'events': [event.to_dict() for event in self.events],
        }


class Outcome(Enum):
    """Outcome of a catalog mutation."""
    OK = 'ok'
    NOT_FOUND = 'not_found'
    UNAUTHORIZED = 'unauthorized'
    INVALID = 'invalid'
    CHOOSE_CENTER = 'choose_center'


@dataclass
class MutationResult:
    """Result of a mutation; failures are reported as data."""
    outcome: Outcome
    record: Any = None
    error: Optional[str] = None
    choices: List[Center] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK
