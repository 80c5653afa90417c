"""Queue routing exceptions."""


class QueueRoutingError(Exception):
    """Base exception for queue routing operations."""


class MissingParameterError(QueueRoutingError):
    """Raised when a required request parameter is absent."""

    def __init__(self, names: list[str]) -> None:
        self.names = list(names)
        super().__init__(f"Missing required query parameters: {' and '.join(self.names)}")


class FatalUpstreamError(QueueRoutingError):
    """Raised when a dependency fails or returns something we cannot use."""


class WebexApiError(FatalUpstreamError):
    """Raised when a Webex telephony API call fails."""

    def __init__(self, method: str, path: str, status_code: int | None, message: str) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        status = status_code if status_code is not None else "no response"
        super().__init__(f"Webex {method} {path} failed ({status}): {message}")


class TimeSourceError(FatalUpstreamError):
    """Raised when the current time for a timezone cannot be determined."""


class QueueNotFoundError(FatalUpstreamError):
    """Raised when no call queue matches the requested location and name."""

    def __init__(self, location_name: str, queue_name: str) -> None:
        self.location_name = location_name
        self.queue_name = queue_name
        super().__init__(f"Call queue {queue_name!r} not found in location {location_name!r}")


class ScheduleNotFoundError(FatalUpstreamError):
    """Raised when a forwarding rule references a schedule the location does not have."""

    def __init__(self, schedule_name: str) -> None:
        self.schedule_name = schedule_name
        super().__init__(f"Schedule {schedule_name!r} not found for location")


class MalformedRuleSetError(FatalUpstreamError):
    """Raised when a queue's call forwarding rules are not the expected four."""


class MalformedScheduleError(FatalUpstreamError):
    """Raised when a schedule event is missing or has unparseable date/time data."""


class PartialMutationError(QueueRoutingError):
    """
    Raised when a mode change stopped part way through the rule updates.
    The queue is left with the rules in `succeeded` updated and the rest untouched.
    """

    def __init__(self, results: list, succeeded: list[str], failed: list[str]) -> None:
        self.results = list(results)
        self.succeeded = list(succeeded)
        self.failed = list(failed)
        super().__init__(
            f"Rule update stopped after partial application: applied={self.succeeded} failed={self.failed}"
        )
