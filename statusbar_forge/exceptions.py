"""Exceptions raised by the I/O collaborators (model adapter, rule store).

The engine itself reports recoverable problems as data, never by raising.
"""


class StatusBarForgeError(Exception):
    pass


class ModelCallError(StatusBarForgeError):
    """The model-serving call failed or returned nothing usable."""


class RuleStoreError(StatusBarForgeError):
    _path: str

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self._path = path

    @property
    def path(self) -> str:
        return self._path
