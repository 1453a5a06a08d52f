"""Category whitelist management."""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from bs4 import BeautifulSoup

from processor.errors import AlreadyExists, InvalidFormat, NotFound
from processor.models import CategoryEntry, CategoryId, ImportResult
from processor.tag_parser import TagParser

logger = logging.getLogger(__name__)

EXPORT_VERSION = '1.0'


class CategoryRegistry:
    """CRUD store for whitelisted categories, persisted in the config store."""

    OPTION_CATEGORIES = 'categories'
    DEFAULT_COLOR = '#4285F4'
    DEFAULT_CATEGORIES = (
        ('COMMUNITY', 'Community Events', '#4285F4'),
        ('WORKSHOP', 'Workshops', '#0F9D58'),
        ('TRAINING', 'Training', '#F4B400'),
    )
    HEX_COLOR = re.compile(r'#(?:[0-9a-fA-F]{3}){1,2}')

    def __init__(self, config_store):
        """
        Initialize the registry.

        Args:
            config_store: Persistent config store with get/set/delete
        """
        self.config_store = config_store

    def list(self) -> List[CategoryEntry]:
        """
        Return all categories.

        Seeds and persists the default categories whenever the stored
        list is missing or empty.

        Returns:
            List of CategoryEntry
        """
        stored = self.config_store.get(self.OPTION_CATEGORIES)
        if not stored:
            logger.info("No categories stored, seeding default categories")
            categories = self._default_entries()
            self._save(categories)
            return categories

        return [CategoryEntry.from_dict(item) for item in stored]

    def get(self, category_id: str) -> Optional[CategoryEntry]:
        """Find a category by case-insensitive id."""
        wanted = CategoryId(category_id)
        for category in self.list():
            if category.id == wanted:
                return category
        return None

    def exists(self, category_id: str) -> bool:
        """Check whether a category exists, ignoring case."""
        return self.get(category_id) is not None

    def valid_ids(self) -> Set[str]:
        """
        Return the whitelist of category ids.

        Returns:
            Set of uppercase ids
        """
        return {str(category.id) for category in self.list()}

    def add(self, category_id: str, display_name: str,
            color: str = DEFAULT_COLOR) -> CategoryEntry:
        """
        Add a new category.

        Raises:
            InvalidFormat: If the id is not alphanumeric/underscore/hyphen
            AlreadyExists: If a case-insensitive match exists
        """
        if not TagParser.is_valid_tag_format(category_id):
            raise InvalidFormat()

        categories = self.list()
        entry = CategoryEntry(
            id=category_id,
            display_name=self.sanitize_display_name(display_name, category_id),
            color=self.sanitize_color(color)
        )
        if any(category.id == entry.id for category in categories):
            raise AlreadyExists()

        categories.append(entry)
        self._save(categories)
        logger.info(f"Added category {entry.id}")
        return entry

    def update(self, category_id: str, display_name: str,
               color: str) -> CategoryEntry:
        """
        Update display name and color of one category.

        Raises:
            NotFound: If no case-insensitive match exists
        """
        wanted = CategoryId(category_id)
        categories = self.list()

        for category in categories:
            if category.id == wanted:
                category.display_name = self.sanitize_display_name(
                    display_name, category.id
                )
                category.color = self.sanitize_color(color)
                self._save(categories)
                logger.info(f"Updated category {category.id}")
                return category

        raise NotFound()

    def delete(self, category_id: str) -> None:
        """
        Delete one category.

        Raises:
            NotFound: If no case-insensitive match exists
        """
        wanted = CategoryId(category_id)
        categories = self.list()
        remaining = [category for category in categories if category.id != wanted]

        if len(remaining) == len(categories):
            raise NotFound()

        self._save(remaining)
        logger.info(f"Deleted category {wanted}")

    def get_color(self, category_id: str) -> str:
        """
        Get the color of a category.

        Args:
            category_id: Category id, any case

        Returns:
            Hex color, or the default blue for unknown ids
        """
        category = self.get(category_id)
        return category.color if category else self.DEFAULT_COLOR

    def get_display_name(self, category_id: str) -> str:
        """
        Get the display name of a category.

        Args:
            category_id: Category id, any case

        Returns:
            Display name, or the id itself for unknown ids
        """
        category = self.get(category_id)
        return category.display_name if category else category_id

    def reset_to_defaults(self) -> List[CategoryEntry]:
        """Replace all categories with the default set."""
        categories = self._default_entries()
        self._save(categories)
        return categories

    def export(self) -> Dict[str, Any]:
        """Build a versioned export payload of all categories."""
        return {
            'version': EXPORT_VERSION,
            'export_date': datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S'),
            'categories': [category.to_dict() for category in self.list()]
        }

    def import_entries(self, entries: Iterable[Dict[str, Any]],
                       merge: bool = True) -> ImportResult:
        """
        Import categories from an export payload.

        Args:
            entries: Category dicts with id, display_name and color
            merge: Keep existing categories and skip their ids; otherwise
                replace the whole list

        Returns:
            ImportResult with imported/skipped counts and error messages
        """
        result = ImportResult()
        categories = self.list() if merge else []
        known_ids = {category.id for category in categories}

        for item in entries:
            if not isinstance(item, dict) or not all(
                key in item for key in ('id', 'display_name', 'color')
            ):
                result.errors.append('Skipped invalid category entry.')
                result.skipped += 1
                continue

            if not TagParser.is_valid_tag_format(item['id']):
                result.errors.append(
                    f"Failed to import {item['id']}: {InvalidFormat().message}"
                )
                result.skipped += 1
                continue

            category_id = CategoryId(item['id'])
            if category_id in known_ids:
                result.skipped += 1
                continue

            categories.append(CategoryEntry(
                id=category_id,
                display_name=self.sanitize_display_name(
                    item['display_name'], category_id
                ),
                color=self.sanitize_color(item['color'])
            ))
            known_ids.add(category_id)
            result.imported += 1

        if result.imported or not merge:
            self._save(categories)

        logger.info(
            f"Imported {result.imported} categories, skipped {result.skipped}"
        )
        return result

    @classmethod
    def sanitize_color(cls, color: Optional[str]) -> str:
        """Return a #rgb/#rrggbb color, or the default blue."""
        if isinstance(color, str) and cls.HEX_COLOR.fullmatch(color.strip()):
            return color.strip()
        return cls.DEFAULT_COLOR

    @staticmethod
    def sanitize_display_name(display_name: Optional[str], fallback: str) -> str:
        """Strip markup and collapse whitespace in a display name."""
        text = BeautifulSoup(display_name or '', 'html.parser').get_text()
        text = ' '.join(text.split())
        return text or str(fallback)

    def _default_entries(self) -> List[CategoryEntry]:
        return [
            CategoryEntry(id=category_id, display_name=name, color=color)
            for category_id, name, color in self.DEFAULT_CATEGORIES
        ]

    def _save(self, categories: List[CategoryEntry]) -> None:
        self.config_store.set(
            self.OPTION_CATEGORIES,
            [category.to_dict() for category in categories]
        )
