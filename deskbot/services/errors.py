"""Error taxonomy shared by the workflow, stores and handlers."""


class DeskbotError(Exception):
    """Base error carrying a machine-readable code."""

    def __init__(self, message: str, code: str = "internal_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(DeskbotError):
    """Bad user input for a workflow step"""

    def __init__(self, message: str):
        super().__init__(message, "validation_error")


class NotFoundError(DeskbotError):
    """Referenced entity is absent"""

    def __init__(self, message: str):
        super().__init__(message, "not_found")


class AuthorizationError(DeskbotError):
    """Actor lacks rights on the entity"""

    def __init__(self, message: str):
        super().__init__(message, "forbidden")


class ConflictError(DeskbotError):
    """Operation violates the current state"""

    def __init__(self, message: str):
        super().__init__(message, "conflict")


class PersistenceError(DeskbotError):
    """Storage collaborator failed"""

    def __init__(self, message: str):
        super().__init__(message, "persistence_error")


class TransportError(DeskbotError):
    """Messaging platform collaborator failed"""

    def __init__(self, message: str):
        super().__init__(message, "transport_error")


class TranscriptionError(DeskbotError):
    """Audio could not be downloaded or transcribed"""

    def __init__(self, message: str):
        super().__init__(message, "transcription_error")
