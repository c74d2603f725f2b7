"""
Vocabulary Deck: JSON vocabulary loader.

Loads vocabulary items from JSON files so they can be imported into the
schedule store. A file holds either a list of records or an object with a
``words`` (or ``vocabulary``) list. Records need ``headword`` (or ``word``)
and ``meaning``; everything else is optional.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

from loguru import logger

from .state import VocabularyItem


class VocabularyDeck:
    """
    A collection of vocabulary items grouped by category.

    Later files override earlier ones when ids collide.
    """

    DEFAULT_PATTERN = "*.json"

    def __init__(self, source: Path | None = None, pattern: str = DEFAULT_PATTERN):
        """
        Initialize the deck.

        Args:
            source: A JSON file or a directory of JSON files
            pattern: Glob used when ``source`` is a directory
        """
        self.source = source
        self.pattern = pattern

        self._items: dict[str, VocabularyItem] = {}
        self._by_category: dict[str, list[str]] = {}

        self._files_loaded: list[Path] = []
        self._records_skipped: int = 0

    @property
    def total_items(self) -> int:
        return len(self._items)

    @property
    def categories(self) -> list[str]:
        """Categories present in the deck."""
        return sorted(self._by_category)

    @property
    def files_loaded(self) -> list[Path]:
        return list(self._files_loaded)

    @property
    def records_skipped(self) -> int:
        return self._records_skipped

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[VocabularyItem]:
        return iter(self._items.values())

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def load(self) -> int:
        """
        Load items from ``source``.

        Returns:
            Number of items in the deck after loading
        """
        self._items.clear()
        self._by_category.clear()
        self._files_loaded.clear()
        self._records_skipped = 0

        if self.source is None:
            logger.warning("No vocabulary source configured")
            return 0

        if self.source.is_file():
            files = [self.source]
        else:
            files = sorted(self.source.glob(self.pattern))

        if not files:
            logger.warning("No vocabulary files found in {}", self.source)
            return 0

        for path in files:
            self.load_file(path)

        logger.info(
            "VocabularyDeck loaded: {} items from {} files ({} skipped)",
            self.total_items,
            len(self._files_loaded),
            self._records_skipped,
        )
        return self.total_items

    def load_file(self, path: Path) -> int:
        """
        Load items from a single JSON file.

        Returns:
            Number of items loaded from this file
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load {}: {}", path, e)
            return 0

        if isinstance(data, dict):
            records = data.get("words") or data.get("vocabulary") or []
        else:
            records = data

        loaded = 0
        for record in records:
            try:
                self.add(VocabularyItem.from_dict(record))
                loaded += 1
            except (ValueError, TypeError, AttributeError) as e:
                self._records_skipped += 1
                logger.warning("Invalid vocabulary record in {}: {}", path.name, e)

        self._files_loaded.append(path)
        logger.debug("Loaded {} items from {}", loaded, path.name)
        return loaded

    def add(self, item: VocabularyItem) -> None:
        """Add or replace an item."""
        previous = self._items.get(item.id)
        if previous is not None:
            siblings = self._by_category[previous.category]
            siblings.remove(item.id)
            if not siblings:
                del self._by_category[previous.category]
        self._items[item.id] = item
        self._by_category.setdefault(item.category, []).append(item.id)

    def get(self, item_id: str) -> VocabularyItem | None:
        return self._items.get(item_id)

    def get_by_ids(self, item_ids: list[str]) -> list[VocabularyItem]:
        """Items for ``item_ids`` in the given order; unknown ids are skipped."""
        return [self._items[i] for i in item_ids if i in self._items]

    def by_category(self, category: str) -> list[VocabularyItem]:
        return [self._items[i] for i in self._by_category.get(category, [])]
