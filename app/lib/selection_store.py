from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import replace

from app.lib.date_utils import utcnow
from app.models.boundary import BoundarySelection
from app.models.types import CityId


class SelectionStore(ABC):
    """
    Persistence of boundary selections.

    Every selection is kept as a history entry. At most one entry per city is active.
    Callers must serialize mutations per city.
    """

    __slots__ = ()

    @abstractmethod
    async def get_active(self, city_id: CityId) -> BoundarySelection | None:
        """Get the active selection of a city."""
        ...

    @abstractmethod
    async def deactivate(self, city_id: CityId) -> BoundarySelection | None:
        """Deactivate the active selection of a city and return the deactivated entry, if any."""
        ...

    @abstractmethod
    async def insert(self, selection: BoundarySelection) -> None:
        """Insert a selection as the active one. The city must have no active selection."""
        ...

    @abstractmethod
    async def history(self, city_id: CityId) -> list[BoundarySelection]:
        """Get all selections of a city, oldest first."""
        ...


class MemorySelectionStore(SelectionStore):
    __slots__ = ('_active', '_history')

    def __init__(self):
        self._active: dict[CityId, BoundarySelection] = {}
        self._history: defaultdict[CityId, list[BoundarySelection]] = defaultdict(list)

    async def get_active(self, city_id: CityId) -> BoundarySelection | None:
        return self._active.get(city_id)

    async def deactivate(self, city_id: CityId) -> BoundarySelection | None:
        selection = self._active.pop(city_id, None)
        if selection is None:
            return None

        # the active selection is always the latest history entry
        selection = replace(selection, deactivated_at=utcnow())
        self._history[city_id][-1] = selection
        return selection

    async def insert(self, selection: BoundarySelection) -> None:
        city_id = selection.city_id
        if city_id in self._active:
            raise RuntimeError(f'City {city_id!r} already has an active selection')
        self._active[city_id] = selection
        self._history[city_id].append(selection)

    async def history(self, city_id: CityId) -> list[BoundarySelection]:
        return self._history.get(city_id, []).copy()
