"""Terminal request errors and the HTTP status each one maps to."""


class SubscriptionError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Forbidden(SubscriptionError):
    """Missing or wrong access token."""
    status_code = 403


class NotFound(SubscriptionError):
    """Profile missing or disabled."""
    status_code = 404


class Unconfigured(SubscriptionError):
    """No converter backend could be resolved."""
    status_code = 500


class UpstreamFailure(SubscriptionError):
    """Converter unreachable or answered with a non-2xx status."""
    status_code = 502

    def __init__(self, detail: str):
        super().__init__(f"Error connecting to subconverter: {detail}")
        self.detail = detail
