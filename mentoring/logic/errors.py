class MatchingError(Exception):
    """Operational error raised by the matching lifecycle; carries an HTTP status."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MatchNotFound(MatchingError):
    def __init__(self, message: str = "Match not found"):
        super().__init__(message, 404)


class NotAssignedMentor(MatchingError):
    def __init__(self, action: str):
        super().__init__(f"Only the assigned mentor can {action} this match", 403)


class MatchConflict(MatchingError):
    def __init__(self, message: str = "Match was updated by another request"):
        super().__init__(message, 409)
