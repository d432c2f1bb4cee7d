"""Exceptions raised by the Tapatalk archiver."""


class ArchiverError(Exception):
    """Base class for archiver errors."""


class MissingContainerError(ArchiverError):
    """A page passed its initial lookup but lacks a required container."""

    def __init__(self, what: str, resource: str = ""):
        self.what = what
        self.resource = resource
        message = f"Missing {what}"
        if resource:
            message += f" on {resource}"
        super().__init__(message)
