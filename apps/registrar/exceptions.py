# registrar/exceptions.py

"""
Registrar workflow errors.

Services raise these internally and hand them back to callers inside a
WorkflowResult; none of them escapes a public service method. UnknownStatus
is the exception: it signals a programming error and is always raised.
Database failures (django.db.DatabaseError) are never wrapped.
"""


class WorkflowError(Exception):
    """Base class for expected, recoverable workflow failures."""

    code = 'workflow_error'

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def as_dict(self):
        return {'code': self.code, 'message': self.message}


class IllegalTransition(WorkflowError):
    """The (from, to) pair is not in the transition table."""

    code = 'illegal_transition'

    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move a request from '{from_status}' to '{to_status}'."
        )


class PreconditionFailed(WorkflowError):
    """
    A user-correctable validation failure attached to a field.

    message_dict mirrors django.core.exceptions.ValidationError so callers
    can merge it straight into form errors.
    """

    code = 'precondition_failed'

    def __init__(self, field, message):
        self.field = field
        super().__init__(message)

    @property
    def message_dict(self):
        return {self.field: [self.message]}

    def as_dict(self):
        data = super().as_dict()
        data['field'] = self.field
        return data


class NotFound(WorkflowError):
    """A payment reference is unknown or no longer pending."""

    code = 'not_found'


class ConcurrentModification(WorkflowError):
    """Another caller committed a change to the same request first."""

    code = 'concurrent_modification'

    def __init__(self, current_status):
        self.current_status = current_status
        super().__init__(
            f"The request changed while you were working on it and is now "
            f"'{current_status}'. Please refresh and try again."
        )


class UnknownStatus(ValueError):
    """A status value outside RequestStatus. Not recoverable."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Unknown document request status: {value!r}")
