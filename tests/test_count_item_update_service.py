"""
Tests for debounced count item updates
"""
import threading
from decimal import Decimal

import pytest

from models import CountItem
from services.count_item_update_service import CountItemUpdateService
from services.inventory_count_service import InventoryCountService


class Recorder:
    """persist() stand-in that records calls and can be told to fail"""

    def __init__(self):
        self.calls = []
        self.fail_with = None
        self.during_write = None

    def __call__(self, item_id, quantity):
        self.calls.append((item_id, quantity))
        if self.during_write:
            hook, self.during_write = self.during_write, None
            hook()
        if self.fail_with:
            raise self.fail_with


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def service(recorder, timers):
    return CountItemUpdateService(recorder, debounce_seconds=0.5, timer_factory=timers)


class TestDebounce:

    def test_rapid_submits_collapse_into_one_write(self, service, recorder, timers):
        for value in ('1', '12', '125'):
            service.submit(7, value)

        assert recorder.calls == []
        assert len(timers.pending) == 1
        assert timers.pending[0].interval == 0.5

        timers.fire_pending()

        assert recorder.calls == [(7, Decimal('125'))]
        state = service.get_state(7)
        assert state['has_unsaved_changes'] is False
        assert state['is_saving'] is False
        assert state['display_value'] == '125'

    def test_unsaved_until_written(self, service, timers):
        service.submit(7, '4')

        assert service.get_state(7)['has_unsaved_changes'] is True
        assert service.has_unsaved_changes is True

        timers.fire_pending()
        assert service.has_unsaved_changes is False

    def test_items_are_independent(self, service, recorder, timers):
        service.submit(1, '3')
        service.submit(2, '9')

        assert len(timers.pending) == 2
        timers.fire_pending()

        assert sorted(recorder.calls) == [(1, Decimal('3')), (2, Decimal('9'))]

    def test_superseded_timer_does_not_write(self, service, recorder, timers):
        service.submit(7, '1')
        first = timers.created[0]
        service.submit(7, '2')

        # a cancelled threading.Timer can still be mid-callback
        first.fire()
        assert recorder.calls == []

        timers.fire_pending()
        assert recorder.calls == [(7, Decimal('2'))]


class TestInFlight:

    def test_value_due_during_write_is_written_after_it(self, service, recorder, timers):
        def type_more():
            service.submit(7, '6')
            assert service.get_state(7)['is_saving'] is True
            timers.fire_pending()

        recorder.during_write = type_more
        service.submit(7, '5')
        timers.fire_pending()

        assert recorder.calls == [(7, Decimal('5')), (7, Decimal('6'))]
        state = service.get_state(7)
        assert state['is_saving'] is False
        assert state['has_unsaved_changes'] is False

    def test_submit_during_write_is_written_right_after_it(self, service, recorder, timers):
        recorder.during_write = lambda: service.submit(7, '8')
        service.submit(7, '5')
        timers.fire_pending()

        assert recorder.calls == [(7, Decimal('5')), (7, Decimal('8'))]
        assert timers.pending == []
        state = service.get_state(7)
        assert state['has_unsaved_changes'] is False
        assert state['is_saving'] is False

    def test_only_latest_value_queued_during_write(self, service, recorder, timers):
        def type_more():
            service.submit(7, '6')
            service.submit(7, '7')

        recorder.during_write = type_more
        service.submit(7, '5')
        timers.fire_pending()

        assert recorder.calls == [(7, Decimal('5')), (7, Decimal('7'))]

    def test_invalid_input_during_write_stays_flagged(self, service, recorder, timers):
        recorder.during_write = lambda: service.submit(7, '-3')
        service.submit(7, '5')
        timers.fire_pending()

        assert recorder.calls == [(7, Decimal('5'))]
        state = service.get_state(7)
        assert state['display_value'] == '-3'
        assert state['has_error'] is True
        assert 'negative' in state['error_message']
        assert state['has_unsaved_changes'] is True
        assert state['is_saving'] is False

    def test_failed_write_keeps_validation_message(self, service, recorder, timers):
        recorder.fail_with = RuntimeError('offline')
        recorder.during_write = lambda: service.submit(7, 'abc')
        service.submit(7, '5')
        timers.fire_pending()

        state = service.get_state(7)
        assert state['has_error'] is True
        assert 'not a number' in state['error_message']

    def test_close_drops_value_queued_during_write(self, service, recorder, timers):
        def type_and_leave():
            service.submit(7, '9')
            service.close()

        recorder.during_write = type_and_leave
        service.submit(7, '5')
        timers.fire_pending()

        assert recorder.calls == [(7, Decimal('5'))]
        assert service.get_state(7)['has_unsaved_changes'] is True


class TestFailures:

    @pytest.mark.parametrize('raw', ['-1', 'abc', '', '1.2.3'])
    def test_invalid_input_never_persists(self, service, recorder, timers, raw):
        service.submit(7, raw)

        assert timers.pending == []
        assert recorder.calls == []
        state = service.get_state(7)
        assert state['has_error'] is True
        assert state['error_message']
        assert state['display_value'] == raw

    def test_invalid_input_cancels_pending_valid_value(self, service, recorder, timers):
        service.submit(7, '5')
        service.submit(7, '-5')

        assert timers.pending == []
        timers.fire_pending()
        assert recorder.calls == []

    def test_failed_write_keeps_value_and_does_not_retry(self, service, recorder, timers):
        recorder.fail_with = RuntimeError('database is locked')
        service.submit(7, '5')
        timers.fire_pending()

        state = service.get_state(7)
        assert state['has_error'] is True
        assert 'database is locked' in state['error_message']
        assert state['display_value'] == '5'
        assert state['has_unsaved_changes'] is True
        assert state['is_saving'] is False
        assert timers.pending == []
        assert len(recorder.calls) == 1

    def test_retry_resubmits_displayed_value(self, service, recorder, timers):
        recorder.fail_with = RuntimeError('offline')
        service.submit(7, '5')
        timers.fire_pending()

        recorder.fail_with = None
        service.retry(7)
        timers.fire_pending()

        assert recorder.calls == [(7, Decimal('5')), (7, Decimal('5'))]
        state = service.get_state(7)
        assert state['has_error'] is False
        assert state['has_unsaved_changes'] is False

    def test_retry_unknown_item_is_a_noop(self, service, timers):
        service.retry(99)
        assert timers.created == []


class TestFlushAndClose:

    def test_flush_all_writes_without_waiting(self, service, recorder, timers):
        service.submit(1, '3')
        service.submit(2, '4')

        service.flush_all()

        assert sorted(recorder.calls) == [(1, Decimal('3')), (2, Decimal('4'))]
        assert timers.pending == []
        # the cancelled timers must not write again
        for timer in timers.created:
            timer.fire()
        assert len(recorder.calls) == 2

    def test_close_cancels_pending_writes(self, service, recorder, timers):
        service.submit(7, '3')
        service.close()

        assert timers.pending == []
        for timer in timers.created:
            timer.fire()
        assert recorder.calls == []

        service.submit(7, '4')
        assert timers.pending == []
        assert service.get_state(7)['has_unsaved_changes'] is True

    def test_unknown_item_state(self, service):
        state = service.get_state(123)
        assert state['has_unsaved_changes'] is False
        assert state['display_value'] is None


class TestRealTimer:

    def test_threading_timer_debounce(self):
        written = threading.Event()
        calls = []

        def persist(item_id, quantity):
            calls.append((item_id, quantity))
            written.set()

        service = CountItemUpdateService(persist, debounce_seconds=0.05)
        service.submit(1, '2')
        service.submit(1, '3')

        assert written.wait(timeout=5)
        service.close()
        assert calls == [(1, Decimal('3'))]


class TestForSession:

    def test_writes_through_the_count_service(self, app, db, team, make_item, timers):
        item = make_item(current_stock=10)
        session = InventoryCountService.start_inventory_count('Live', team_id=team.id)
        updates = CountItemUpdateService.for_session(app, session.id, timer_factory=timers)

        assert updates.debounce_seconds == app.config['COUNT_DEBOUNCE_SECONDS']

        updates.submit(item.id, '9')
        timers.fire_pending()

        db.session.expire_all()
        count_item = CountItem.query.filter_by(count_id=session.id, item_id=item.id).one()
        assert count_item.actual_quantity == Decimal('9')
        assert updates.get_state(item.id)['has_error'] is False

    def test_closed_session_flags_the_item(self, app, db, team, make_item, timers):
        item = make_item(current_stock=10)
        session = InventoryCountService.start_inventory_count('Live', team_id=team.id)
        InventoryCountService.cancel_inventory_count(session.id, 'stop')
        updates = CountItemUpdateService.for_session(app, session.id, timer_factory=timers)

        updates.submit(item.id, '9')
        timers.fire_pending()

        state = updates.get_state(item.id)
        assert state['has_error'] is True
        assert state['display_value'] == '9'
