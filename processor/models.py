"""Data models for event processing."""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional


class CategoryId(str):
    """Category identifier, canonicalized to uppercase on construction."""

    def __new__(cls, value: str) -> 'CategoryId':
        return super().__new__(cls, str(value).strip().upper())


@dataclass
class CategoryEntry:
    """Whitelisted category."""
    id: CategoryId
    display_name: str
    color: str

    def __post_init__(self):
        self.id = CategoryId(self.id)

    def to_dict(self) -> Dict[str, str]:
        """Convert to a dict for storage and JSON responses."""
        return {
            'id': str(self.id),
            'display_name': self.display_name,
            'color': self.color
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CategoryEntry':
        """Build an entry from a stored dict."""
        return cls(
            id=data['id'],
            display_name=data['display_name'],
            color=data['color']
        )


@dataclass
class RawEvent:
    """Raw event from the calendar API."""
    id: str
    title: Optional[str]
    raw_description: str
    location: str
    start: str
    end: str
    is_all_day: bool
    html_link: Optional[str]


@dataclass(frozen=True)
class TagResult:
    """Tags found in a description, split by whitelist membership."""
    valid: FrozenSet[str] = frozenset()
    invalid: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class ProcessedEvent:
    """Annotated event ready for filtering, caching and rendering."""
    id: str
    title: str
    clean_description: str
    location: str
    start: str
    end: str
    is_all_day: bool
    valid_tags: FrozenSet[str]
    invalid_tags: FrozenSet[str]
    html_link: Optional[str]
    map_link: str

    @property
    def is_untagged(self) -> bool:
        return not self.valid_tags and not self.invalid_tags

    @property
    def has_unknown_tags_only(self) -> bool:
        return bool(self.invalid_tags) and not self.valid_tags

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the JSON shape consumed by the cache and renderers.

        Tag sets are emitted as sorted lists. The derived flags are
        included as display hints.
        """
        return {
            'id': self.id,
            'title': self.title,
            'description': self.clean_description,
            'location': self.location,
            'start': self.start,
            'end': self.end,
            'is_all_day': self.is_all_day,
            'tags': sorted(self.valid_tags),
            'invalid_tags': sorted(self.invalid_tags),
            'is_untagged': self.is_untagged,
            'has_unknown_tags': self.has_unknown_tags_only,
            'html_link': self.html_link,
            'map_link': self.map_link
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProcessedEvent':
        """
        Rebuild an event from its to_dict() form.

        Args:
            data: Dict as stored in the cache

        Returns:
            ProcessedEvent

        Raises:
            KeyError: If a required field is missing
        """
        return cls(
            id=data['id'],
            title=data['title'],
            clean_description=data.get('description', ''),
            location=data.get('location', ''),
            start=data['start'],
            end=data['end'],
            is_all_day=bool(data.get('is_all_day', False)),
            valid_tags=frozenset(data.get('tags', [])),
            invalid_tags=frozenset(data.get('invalid_tags', [])),
            html_link=data.get('html_link'),
            map_link=data.get('map_link', '')
        )


@dataclass
class ImportResult:
    """Result of a category import."""
    imported: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class PipelineResult:
    """Outcome of one pipeline run: events, or an error."""
    events: List[ProcessedEvent] = field(default_factory=list)
    error: Optional[Exception] = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None
