import logging
from asyncio import Lock
from weakref import WeakValueDictionary

from app.lib.date_utils import utcnow
from app.lib.selection_store import MemorySelectionStore, SelectionStore
from app.models.boundary import BoundarySelection, ResolvedBoundary
from app.models.types import CallerId, CityId


class BoundarySelectionService:
    """
    Boundary overrides of cities.

    A city has at most one active selection. Mutations of the same city are
    serialized, different cities proceed concurrently.
    """

    __slots__ = ('_locks', '_store')

    def __init__(self, store: SelectionStore | None = None):
        self._store = store if store is not None else MemorySelectionStore()
        self._locks: WeakValueDictionary[CityId, Lock] = WeakValueDictionary()

    @property
    def store(self) -> SelectionStore:
        return self._store

    async def select(
        self,
        city_id: CityId,
        boundary: ResolvedBoundary,
        *,
        selected_by: CallerId,
    ) -> BoundarySelection:
        """
        Make the boundary the active selection of the city.

        Selecting the already active boundary again returns the existing selection.
        """
        async with self._lock(city_id):
            current = await self._store.get_active(city_id)
            if current is not None and current.composite_id == boundary.composite_id:
                logging.debug('Boundary %s is already selected for city %r', boundary.composite_id, city_id)
                return current

            if current is not None:
                await self._store.deactivate(city_id)

            selection = BoundarySelection(
                city_id=city_id,
                composite_id=boundary.composite_id,
                selected_at=utcnow(),
                selected_by=selected_by,
                boundary=boundary,
            )
            await self._store.insert(selection)

        logging.info('Selected boundary %s for city %r by %r', boundary.composite_id, city_id, selected_by)
        return selection

    async def get_selection(self, city_id: CityId) -> BoundarySelection | None:
        """Get the active selection of the city."""
        return await self._store.get_active(city_id)

    async def restore_default(self, city_id: CityId) -> None:
        """Remove the boundary override of the city. Does nothing if there is none."""
        async with self._lock(city_id):
            selection = await self._store.deactivate(city_id)

        if selection is not None:
            logging.info('Restored default boundary for city %r', city_id)

    def _lock(self, city_id: CityId) -> Lock:
        lock = self._locks.get(city_id)
        if lock is None:
            lock = self._locks[city_id] = Lock()
        return lock
