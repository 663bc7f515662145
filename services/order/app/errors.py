"""
Order Service - error taxonomy

Every failure the core reports to a caller is one of these.
main.py turns them into HTTP responses; nothing here is retried.
"""


class OrderServiceError(Exception):
    code = "ORDER_ERROR"
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(OrderServiceError):
    code = "RESOURCE_NOT_FOUND"
    status_code = 404


class AccessDeniedError(OrderServiceError):
    code = "ACCESS_DENIED"
    status_code = 403


class InvalidOperationError(OrderServiceError):
    code = "INVALID_OPERATION"
    status_code = 400


class InvalidTransitionError(InvalidOperationError):
    """Requested status is not reachable from the current one."""

    def __init__(self, current, requested) -> None:
        super().__init__(f"Invalid status transition: {current.value} -> {requested.value}")
        self.current = current
        self.requested = requested
