"""
GanttEngine - owns the authoritative snapshot and drives dispatch.

dispatch(action):
    1. run the pure transition function
    2. on success, take ownership of the returned snapshot
    3. persist it (failures are logged, never rolled back)
    4. publish notifications to subscribers

Rejected actions and no-ops touch neither the store nor the bus.
"""
from typing import Any, Callable, Dict, Optional, Union

from ganttkit import reducer
from ganttkit.actions import Action, SetState, parse_action
from ganttkit.data.core import SnapshotStore
from ganttkit.events import EventBus, STATE_CHANGED, DATA_UPDATED, collection_event
from ganttkit.logs import get_logger
from ganttkit.models import GanttState, StatePatch
from ganttkit.reducer import TransitionResult, SCHEDULING_COLLECTIONS

log = get_logger("engine")

def full_state_action(state: GanttState) -> SetState:
    """SET_STATE action that replaces every field of the snapshot."""
    return SetState(payload=StatePatch(**{name: getattr(state, name) for name in GanttState.model_fields}))

class GanttEngine:
    def __init__(self, snapshot_store: Optional[SnapshotStore] = None, bus: Optional[EventBus] = None):
        self.snapshot_store = snapshot_store
        self.bus = bus or EventBus()
        self.persist_failures = 0
        self._state = GanttState()
        if snapshot_store is not None:
            self.hydrate()

    @property
    def state(self) -> GanttState:
        """Current snapshot. Read it, never mutate it."""
        return self._state

    def hydrate(self) -> GanttState:
        """Replace the in-memory snapshot with whatever the store holds."""
        loaded = self.snapshot_store.load()
        result = reducer.apply(GanttState(), full_state_action(loaded))
        self._state = result.state
        self._notify(result)
        return self._state

    def dispatch(self, action: Union[Action, Dict[str, Any]]) -> TransitionResult:
        if isinstance(action, dict):
            action = parse_action(action)

        result = reducer.apply(self._state, action)
        if result.error is not None:
            log.info(f"{action.type} rejected: {result.error.code}: {result.error.message}")
            return result
        if not result.applied:
            log.debug(f"{action.type} was a no-op")
            return result

        self._state = result.state
        log.debug(f"{action.type} applied, changed={sorted(result.changed)}")
        self._persist(result)
        self._notify(result)
        return result

    def restore(self, state: GanttState) -> TransitionResult:
        """Swap in a whole snapshot (backup restore, import)."""
        return self.dispatch(full_state_action(state))

    def subscribe(self, event: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        return self.bus.subscribe(event, callback)

    def _persist(self, result: TransitionResult):
        if self.snapshot_store is None:
            return
        if not self.snapshot_store.save(result.state, include_team="users" in result.changed):
            self.persist_failures += 1
            log.warning("Snapshot not persisted; continuing with in-memory state")

    def _notify(self, result: TransitionResult):
        state = result.state
        self.bus.publish(STATE_CHANGED, state)
        if result.changed & SCHEDULING_COLLECTIONS:
            self.bus.publish(DATA_UPDATED, state.scheduling_data())
        for collection in sorted(result.changed & (SCHEDULING_COLLECTIONS | {"users"})):
            self.bus.publish(collection_event(collection), getattr(state, collection))
