"""Tag marker parsing and whitelist validation."""
import logging
import re
from typing import Iterable, Optional, Set

from processor.models import CategoryId, TagResult

logger = logging.getLogger(__name__)


class TagParser:
    """Extracts category tags from event descriptions."""

    # [[[TAG:COMMUNITY]]], plus the bare [[[COMMUNITY]]] form
    TAG_PATTERN = re.compile(r'\[\[\[(?:TAG:)?([A-Z0-9_-]+)\]\]\]', re.IGNORECASE | re.ASCII)
    TAG_FORMAT = re.compile(r'[A-Z0-9_-]+', re.ASCII)
    BLANK_LINES = re.compile(r'\n\s*\n')

    def __init__(self, registry):
        """
        Initialize the parser.

        Args:
            registry: Category registry providing valid_ids()
        """
        self.registry = registry

    def valid_ids(self) -> Set[str]:
        """Snapshot of the whitelisted category ids."""
        return {CategoryId(category_id) for category_id in self.registry.valid_ids()}

    def extract_tags(self, text: str,
                     valid_ids: Optional[Iterable[str]] = None) -> TagResult:
        """
        Extract tags from a description and validate them.

        Args:
            text: Raw event description
            valid_ids: Whitelist snapshot; read from the registry if omitted

        Returns:
            TagResult with deduplicated valid and invalid tags
        """
        if not text:
            return TagResult()

        tokens = [CategoryId(match) for match in self.TAG_PATTERN.findall(text)]
        if not tokens:
            return TagResult()

        if valid_ids is None:
            valid_ids = self.valid_ids()
        whitelist = {CategoryId(category_id) for category_id in valid_ids}

        valid = set()
        invalid = set()
        for token in tokens:
            if token in whitelist:
                valid.add(token)
            else:
                invalid.add(token)

        for token in sorted(invalid):
            logger.warning(
                f"Invalid tag \"{token}\" found in event. Not in whitelist."
            )

        return TagResult(valid=frozenset(valid), invalid=frozenset(invalid))

    def strip_tags(self, text: str) -> str:
        """
        Remove tag markers from a description.

        Markers are removed until none remain, then blank-line runs are
        collapsed to one and the result is trimmed.

        Args:
            text: Raw event description

        Returns:
            Clean description
        """
        if not text:
            return ''

        clean = text
        while True:
            clean, removed = self.TAG_PATTERN.subn('', clean)
            if not removed:
                break

        clean = self.BLANK_LINES.sub('\n\n', clean)
        return clean.strip()

    def is_valid_tag(self, tag: str) -> bool:
        """Check whether a tag is in the whitelist."""
        if not self.is_valid_tag_format(tag):
            return False
        return CategoryId(tag) in self.valid_ids()

    @classmethod
    def is_valid_tag_format(cls, tag_id: str) -> bool:
        """Check that a category id is alphanumeric with underscores/hyphens."""
        if not isinstance(tag_id, str) or not tag_id.isascii():
            return False
        return cls.TAG_FORMAT.fullmatch(tag_id.upper()) is not None
