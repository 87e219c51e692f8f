"""
What the agent knows about items in the world.

Knowledge is keyed by item id. Items of the same kind share a category
id, so whatever is learned about one item is propagated to every other
known item with that category id.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .types import Position
from .util import distance

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


@dataclass
class KnowledgeItem:
    """
    Knowledge about one item.

    Attributes:
        item_id: Unique item identifier
        position: Where the item was last seen
        category_id: Shared identifier for items of the same kind
        category: Learned category name ("unknown" until learned)
        description: Learned description ("unknown" until learned)
    """
    item_id: str
    position: Position
    category_id: str
    category: str = UNKNOWN
    description: str = UNKNOWN

    def __post_init__(self):
        self.position = tuple(self.position)

    @property
    def is_unknown(self) -> bool:
        return self.category == UNKNOWN or self.description == UNKNOWN

    @property
    def is_fully_known(self) -> bool:
        return self.category != UNKNOWN and self.description != UNKNOWN

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["position"] = list(self.position)
        return data


class KnowledgeBase:
    """Ordered map of item id to KnowledgeItem."""

    def __init__(self, items: Optional[Iterable[KnowledgeItem]] = None):
        self._items: Dict[str, KnowledgeItem] = {}
        for item in items or ():
            self.add(item)

    def add(self, item: KnowledgeItem) -> KnowledgeItem:
        self._items[item.item_id] = item
        return item

    def get(self, item_id: str) -> Optional[KnowledgeItem]:
        return self._items.get(item_id)

    def learn_new_item(
        self,
        item_id: str,
        position: Sequence[float],
        category_id: str,
    ) -> KnowledgeItem:
        """
        Add a newly perceived item, seeded from a fully known item of the same category.
        """
        item = KnowledgeItem(item_id=item_id, position=tuple(position), category_id=category_id)
        for other in self._items.values():
            if other.category_id == category_id and other.is_fully_known:
                item.category = other.category
                item.description = other.description
                break
        return self.add(item)

    def update(
        self,
        item_id: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
    ) -> List[KnowledgeItem]:
        """
        Set category and/or description, propagating to the same category id.

        Returns:
            Every item that was changed (empty if ``item_id`` is unknown)
        """
        target = self._items.get(item_id)
        if target is None:
            return []

        changed = []
        for item in self._items.values():
            if item is target or item.category_id == target.category_id:
                if category:
                    item.category = category
                if description:
                    item.description = description
                changed.append(item)
        return changed

    def first_unknown(self) -> Optional[KnowledgeItem]:
        for item in self._items.values():
            if item.is_unknown:
                return item
        return None

    def find_food(self, keywords: Sequence[str]) -> Optional[KnowledgeItem]:
        """First item whose category contains any of ``keywords`` (case-insensitive)."""
        for item in self._items.values():
            if is_food(item.category, keywords):
                return item
        return None

    def near(self, position: Sequence[float], radius: float) -> List[KnowledgeItem]:
        return [i for i in self._items.values() if distance(i.position, position) <= radius]

    def items(self) -> List[KnowledgeItem]:
        return list(self._items.values())

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items

    def __iter__(self) -> Iterator[KnowledgeItem]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)


def is_food(category: Optional[str], keywords: Sequence[str]) -> bool:
    if not category:
        return False
    lowered = category.lower()
    return any(k.lower() in lowered for k in keywords)
