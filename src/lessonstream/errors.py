# exceptions raised by the lessonstream package


class LessonstreamError(Exception):
    """Base class for lessonstream errors"""


# raised when a session method is called in the wrong lifecycle state
class SessionStateError(LessonstreamError):
    pass


# raised when the upstream llm endpoint fails or is misconfigured
class LLMServiceError(LessonstreamError):
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class UnknownContentKindError(LessonstreamError, ValueError):
    pass
