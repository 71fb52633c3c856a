class StudyError(Exception):
    """Бизнес-ошибки; на границе запроса превращаются в HTTP статус + message."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


class AuthError(StudyError):
    status_code = 401
    message = "No participant code found. Please start from the beginning."


class CodeNotFoundError(AuthError):
    status_code = 404
    message = "Invalid participant code. Please check your code and try again."


class CodeAlreadyUsedError(AuthError):
    status_code = 403
    message = (
        "This participant code has already been used. "
        "Please contact the researcher for a new code."
    )


class ValidationError(StudyError):
    status_code = 400
    message = "Invalid request"


class NotFoundError(StudyError):
    status_code = 404
    message = "Not found"


class InsufficientDataError(StudyError):
    status_code = 422
    message = "Not enough videos to build a balanced playlist"


class StaleProgressError(StudyError):
    status_code = 409
    message = "Progress has changed, reload the experiment"


class PersistenceError(StudyError):
    # детали только в лог, клиенту -- общий текст
    status_code = 500
    message = "Internal server error"
