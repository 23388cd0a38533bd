"""Exception hierarchy for container building, restoring and serving."""


class ExezipError(Exception):
    """Base class for all exezip errors."""

    pass


class ValidationError(ExezipError, ValueError):
    """Invalid argument, such as a parent traversal in a scoping path."""

    pass


class NotFoundError(ExezipError, FileNotFoundError):
    """A source path, container or embedded file does not exist."""

    pass


class FormatError(ExezipError, ValueError):
    """Malformed trailer or archive region."""

    pass


class ContainerIOError(ExezipError, OSError):
    """Reading or writing a container failed."""

    pass


class UnsupportedError(ExezipError, NotImplementedError):
    """Operation not supported by an opened file."""

    pass
