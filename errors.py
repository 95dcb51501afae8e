# errors.py


class JournalError(Exception):
    """Base class for every error raised by the journal core."""


class ValidationError(JournalError):
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class RenderError(JournalError):
    """An attachment could not be read."""


class PersistenceError(JournalError):
    """The key-value store rejected a write. In-memory state is kept."""
