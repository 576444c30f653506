class SupportFormError(Exception):
    """Base class for errors raised by the support form service."""


class FlowError(SupportFormError):
    """Unknown flow, unknown field, or a field that is not currently shown."""


class ValidationFailed(SupportFormError):
    """A value or the whole form failed validation.

    `message` is the user-facing string shown next to the form.
    """

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.message = message
        self.field = field


class UploadRejected(SupportFormError):
    """An attachment broke a size, count or type limit."""

    def __init__(self, message: str, filename: str = ""):
        super().__init__(message)
        self.message = message
        self.filename = filename


class SubmissionFailed(SupportFormError):
    """The GraphQL endpoint rejected a submission or could not be reached."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
