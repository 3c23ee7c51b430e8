class RelayError(Exception):
    """Base class for relaychat errors."""


class PersistenceError(RelayError):
    """A credential or transcript file could not be written."""


class ArchiveNotFound(RelayError):
    def __init__(self, name: str):
        super().__init__(f"archive not found: {name}")
        self.name = name
