"""Visibility policy for processed events."""
import logging
import re
from typing import Iterable, List, Optional

from processor.models import CategoryId, ProcessedEvent

logger = logging.getLogger(__name__)


def _matches(requested: str, event_tags: Iterable[str]) -> bool:
    if '*' in requested:
        pattern = re.compile(
            '^' + re.escape(requested).replace(r'\*', '.*') + '$'
        )
        return any(pattern.match(tag) for tag in event_tags)
    return requested in event_tags


def is_visible(event: ProcessedEvent, requested_tags: List[str],
               viewer_is_privileged: bool) -> bool:
    """
    Decide whether one event is shown.

    Untagged and unknown-tag-only events are shown to privileged viewers
    only. Otherwise, with no requested tags every event is shown; with
    requested tags the event must carry any of them.
    """
    if event.has_unknown_tags_only or event.is_untagged:
        return viewer_is_privileged

    if not requested_tags:
        return True

    return any(_matches(tag, event.valid_tags) for tag in requested_tags)


def filter_by_tags(events: Iterable[ProcessedEvent],
                   requested_tags: Optional[Iterable[str]],
                   viewer_is_privileged: bool) -> List[ProcessedEvent]:
    """
    Filter events by requested tags and viewer privilege.

    Args:
        events: Processed events
        requested_tags: Tags to filter by (OR semantics, '*' wildcards)
        viewer_is_privileged: Whether the viewer has administrative rights

    Returns:
        Visible events, in their original order
    """
    requested = [CategoryId(tag) for tag in (requested_tags or []) if tag]
    return [
        event for event in events
        if is_visible(event, requested, viewer_is_privileged)
    ]


def parse_requested_tags(raw: Optional[str], tag_parser) -> List[str]:
    """
    Parse a comma-separated tag filter.

    Whitelisted tags and wildcard patterns are kept, uppercased and
    deduplicated in order. Other tokens are dropped and logged.

    Args:
        raw: Comma-separated tags, e.g. "community, workshop"
        tag_parser: TagParser used for whitelist checks

    Returns:
        List of requested tags
    """
    if not raw:
        return []

    valid_ids = tag_parser.valid_ids()
    requested = []
    for token in raw.split(','):
        token = token.strip()
        if not token:
            continue

        tag = CategoryId(token)
        is_wildcard = '*' in tag and tag_parser.is_valid_tag_format(
            tag.replace('*', '')
        )
        if token.isascii() and (tag in valid_ids or is_wildcard):
            if tag not in requested:
                requested.append(tag)
        else:
            logger.warning(
                f"Invalid tag \"{token}\" specified. Tag not in whitelist."
            )

    return requested
