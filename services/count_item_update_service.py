"""
Count Item Update Service - debounced, per-item serialized count persistence

Operators type quantities faster than they should be written. Each item gets:
  - a debounce timer: submits inside the window collapse into one write of the
    latest value
  - an in-flight guard: at most one write per item at a time; a value
    submitted while a write is running is written right after it finishes
Items are independent of each other; there is no lock across a session beyond
the short critical sections guarding the per-item state records.

Failed writes flag the item and keep the typed value for the operator to
re-submit. Nothing is retried automatically.
"""
import threading
from utils.decimal_utils import parse_decimal_input
import logging

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5


class ItemEditState:
    """What the count screen renders for one item"""

    __slots__ = ('display_value', 'is_saving', 'has_error', 'has_unsaved_changes',
                 'error_message', 'last_saved_value',
                 '_pending', '_submitted', '_timer', '_generation', '_flush_due')

    def __init__(self):
        self.display_value = None
        self.is_saving = False
        self.has_error = False
        self.has_unsaved_changes = False
        self.error_message = None
        self.last_saved_value = None
        self._pending = None
        # last valid value typed; None while the input on screen is invalid
        self._submitted = None
        self._timer = None
        self._generation = 0
        self._flush_due = False

    def to_dict(self):
        return {
            'display_value': self.display_value,
            'is_saving': self.is_saving,
            'has_error': self.has_error,
            'has_unsaved_changes': self.has_unsaved_changes,
            'error_message': self.error_message,
        }


class CountItemUpdateService:
    """
    Turns a stream of quantity edits into a minimal sequence of writes.

    ``persist`` is called as ``persist(item_id, quantity)`` with a validated
    Decimal, from a timer thread. ``timer_factory`` builds objects with the
    ``threading.Timer`` interface (``start``/``cancel``).
    """

    def __init__(self, persist, debounce_seconds=DEFAULT_DEBOUNCE_SECONDS, timer_factory=None):
        self._persist = persist
        self.debounce_seconds = debounce_seconds
        self._timer_factory = timer_factory or threading.Timer
        self._states = {}
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def for_session(cls, app, session_id, debounce_seconds=None, timer_factory=None, actor=None):
        """Bind persistence to InventoryCountService.update_count_item for one session"""
        from models import db
        from services.inventory_count_service import InventoryCountService

        def persist(item_id, quantity):
            with app.app_context():
                try:
                    InventoryCountService.update_count_item(session_id, item_id, quantity, actor=actor)
                except Exception:
                    db.session.rollback()
                    raise

        if debounce_seconds is None:
            debounce_seconds = app.config.get('COUNT_DEBOUNCE_SECONDS', DEFAULT_DEBOUNCE_SECONDS)
        return cls(persist, debounce_seconds=debounce_seconds, timer_factory=timer_factory)

    # Commands

    def submit(self, item_id, raw_value):
        """
        Take a raw value from the UI. Invalid input is flagged immediately and
        never reaches persistence; valid input (re)starts the item's debounce.
        """
        with self._lock:
            state = self._state(item_id)
            state.display_value = raw_value
            state.has_unsaved_changes = True

            try:
                quantity = parse_decimal_input(raw_value, error_label='Quantity')
            except ValueError as e:
                state.has_error = True
                state.error_message = str(e)
                state._pending = None
                state._submitted = None
                state._flush_due = False
                self._cancel_timer(state)
                logger.debug(f"Item {item_id}: rejected input {raw_value!r}: {e}")
                return

            state.has_error = False
            state.error_message = None
            state._pending = quantity
            state._submitted = quantity
            if self._closed:
                return
            self._cancel_timer(state)
            state._generation += 1
            if state.is_saving:
                # written by the in-flight call as soon as it returns
                state._flush_due = True
                return
            timer = self._timer_factory(self.debounce_seconds, self._on_debounce,
                                        args=(item_id, state._generation))
            timer.daemon = True
            state._timer = timer

        timer.start()

    def retry(self, item_id):
        """Re-submit the value currently shown for an item"""
        with self._lock:
            state = self._states.get(item_id)
            value = state.display_value if state else None
        if state is None:
            return
        self.submit(item_id, value)

    def flush_all(self):
        """Write every pending value now instead of waiting for its timer"""
        with self._lock:
            due = []
            for item_id, state in self._states.items():
                if state._pending is None:
                    continue
                self._cancel_timer(state)
                state._generation += 1
                if state.is_saving:
                    state._flush_due = True
                else:
                    due.append(item_id)
        for item_id in due:
            self._on_debounce(item_id)

    def close(self):
        """
        Stop scheduling writes. Pending debounce timers and queued values are
        dropped; writes already in flight are left to finish.
        """
        with self._lock:
            self._closed = True
            for state in self._states.values():
                self._cancel_timer(state)
                state._generation += 1
                state._flush_due = False

    # State access

    def get_state(self, item_id) -> dict:
        with self._lock:
            state = self._states.get(item_id)
            return state.to_dict() if state else ItemEditState().to_dict()

    def get_states(self) -> dict:
        with self._lock:
            return {item_id: state.to_dict() for item_id, state in self._states.items()}

    @property
    def has_unsaved_changes(self) -> bool:
        with self._lock:
            return any(s.has_unsaved_changes for s in self._states.values())

    # Internals

    def _state(self, item_id):
        state = self._states.get(item_id)
        if state is None:
            state = self._states[item_id] = ItemEditState()
        return state

    @staticmethod
    def _cancel_timer(state):
        if state._timer is not None:
            state._timer.cancel()
            state._timer = None

    def _on_debounce(self, item_id, generation=None):
        with self._lock:
            state = self._state(item_id)
            if generation is not None and generation != state._generation:
                # superseded by a later submit
                return
            state._timer = None
            if state._pending is None:
                return
            if state.is_saving:
                state._flush_due = True
                return
            quantity = state._pending
            state._pending = None
            state.is_saving = True

        self._write(item_id, quantity)

    def _write(self, item_id, quantity):
        while True:
            error = None
            try:
                self._persist(item_id, quantity)
            except Exception as e:
                error = e
                logger.warning(f"Item {item_id}: saving {quantity} failed: {e}")

            with self._lock:
                state = self._state(item_id)
                # only report on what the operator still sees
                current = state._submitted == quantity
                if error is None:
                    state.last_saved_value = quantity
                    if current:
                        state.has_error = False
                        state.error_message = None
                        if state._pending is None and state._timer is None:
                            state.has_unsaved_changes = False
                elif state._submitted is not None:
                    state.has_error = True
                    state.error_message = str(error)

                if state._flush_due and state._pending is not None:
                    quantity = state._pending
                    state._pending = None
                    state._flush_due = False
                    continue

                state._flush_due = False
                state.is_saving = False
                return
