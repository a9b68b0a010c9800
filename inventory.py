from typing import Dict, Iterator, List, Optional

from models import ElementDescriptor


class Inventory:
    """Locator -> latest descriptor, accumulated across passes.

    Written only by the traversal engine. Readers calling ``snapshot`` while a
    pass is in flight see a partially updated view.
    """

    def __init__(self):
        self._items: Dict[str, ElementDescriptor] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, locator: str) -> bool:
        return locator in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def get(self, locator: str) -> Optional[ElementDescriptor]:
        return self._items.get(locator)

    def put(self, descriptor: ElementDescriptor) -> None:
        self._items[descriptor.locator] = descriptor

    def remove(self, locator: str) -> bool:
        return self._items.pop(locator, None) is not None

    def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> List[ElementDescriptor]:
        return [d.model_copy() for d in self._items.values()]
