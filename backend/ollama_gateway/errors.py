from typing import Optional, Sequence


class GatewayError(Exception):
    """A client-visible failure, rendered as a plain text HTTP error."""

    status_code = 400
    message = "bad request"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MethodNotAllowed(GatewayError):
    status_code = 405
    message = "method not allowed"


class InvalidPayload(GatewayError):
    message = "invalid JSON payload"


class MissingPrompt(GatewayError):
    message = "prompt is required"


class ModelNotAllowed(GatewayError):
    def __init__(self, allowed: Sequence[str]):
        if len(allowed) == 1:
            message = "model not allowed: use " + allowed[0]
        else:
            message = "model not allowed: use one of " + ", ".join(allowed)
        super().__init__(message)
        self.allowed = tuple(allowed)
