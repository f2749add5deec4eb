"""Error taxonomy for the notification pipeline."""


class NotifierError(Exception):
    """Base class for all notifier errors."""


class Rejected(NotifierError):
    """Admission refused because shutdown is in progress."""

    def __init__(self, message: str = "System is shutting down. Not accepting new events."):
        super().__init__(message)


class UnsupportedCategory(NotifierError):
    """Event references a category with no configured queue or worker."""

    def __init__(self, category):
        self.category = getattr(category, "value", category)
        super().__init__(f"Unsupported event type: {self.category}")


class InvalidTransition(NotifierError):
    """An event was asked to move to a state its lifecycle does not allow."""

    def __init__(self, event_id: str, current, target):
        self.event_id = event_id
        self.current = current
        self.target = target
        super().__init__(f"Event {event_id} cannot move from {current} to {target}")


class DeliveryFailure(NotifierError):
    """A single callback attempt failed (non-2xx response or transport error)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class DeliveryExhausted(NotifierError):
    """Every callback attempt for an event failed."""

    def __init__(self, event_id: str, attempts: int, last_error: Exception | None = None):
        self.event_id = event_id
        self.attempts = attempts
        self.last_error = last_error
        msg = f"Callback for event {event_id} undelivered after {attempts} attempts"
        if last_error:
            msg += f": {last_error}"
        super().__init__(msg)
