"""
Typed errors raised by the count engine.

Every error carries a machine-readable ``code``. Validation errors are
caller-correctable; state errors mean a transition was attempted from the
wrong state. Both are raised before anything is written, so the session and
its items are left unchanged.

CountError derives from ValueError so callers that only guard against
ValueError keep working.
"""


class CountError(ValueError):
    code = 'count_error'
    http_status = 400


# Validation errors

class ValidationError(CountError):
    code = 'validation_error'


class InvalidQuantityError(ValidationError):
    code = 'invalid_quantity'

    def __init__(self, value, reason='Quantity must be a non-negative number'):
        self.value = value
        super().__init__(f"{reason}: {value!r}")


class InvalidSourceError(ValidationError):
    code = 'invalid_source'

    def __init__(self, message='Count source has no items', template_id=None):
        self.template_id = template_id
        super().__init__(message)


class InvalidUpdateError(ValidationError):
    code = 'invalid_update'

    def __init__(self, entry, reason='Each update must be an object with item_id and actual_quantity'):
        self.entry = entry
        super().__init__(f"{reason}: {entry!r}")


class InvalidThresholdError(ValidationError):
    code = 'invalid_threshold'


# State errors

class StateError(CountError):
    code = 'state_error'
    http_status = 409


class NotFoundError(StateError):
    code = 'not_found'
    http_status = 404

    def __init__(self, resource, resource_id):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found: {resource_id}")


class SessionClosedError(StateError):
    code = 'session_closed'

    def __init__(self, session_id, status):
        self.session_id = session_id
        self.status = status
        super().__init__(f"Count {session_id} is {status}; only in-progress counts can change")


class NotCompletedError(StateError):
    code = 'not_completed'

    def __init__(self, session_id, status):
        self.session_id = session_id
        self.status = status
        super().__init__(f"Count {session_id} is {status}; only completed counts can be voided")


class AlreadyVoidedError(StateError):
    code = 'already_voided'

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Count {session_id} is already voided")


class EmptyCountError(StateError):
    code = 'empty_count'

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Count {session_id} has no counted items")
