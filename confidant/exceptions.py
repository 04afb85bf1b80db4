import pathlib
import typing

import click


class ConfidantException(click.ClickException):
    exit_code = 1


class UsageError(click.UsageError, ConfidantException):
    exit_code = 1


class StateError(ConfidantException):
    pass


class NotFoundError(ConfidantException):
    pass


class ConflictError(ConfidantException):
    pass


class ProviderError(ConfidantException):
    pass


class NoFilesSpecified(UsageError):
    def __init__(self, operation: str):
        super().__init__(f"No files given to {operation}")


class MissingKeylist(StateError):
    def __init__(self, path: pathlib.Path):
        super().__init__(
            f"Keylist {path} does not exist - run 'confidant share' first")
        self.path = path


class MalformedKeylist(StateError):
    def __init__(self, path: pathlib.Path, line: int, text: str):
        super().__init__(
            f"Line {line} of {path} is not in the form 'KEYID NAME': {text!r}")
        self.path = path
        self.line = line


class UnreadableKeylist(StateError):
    def __init__(self, path: pathlib.Path, line: int):
        super().__init__(f"Line {line} of {path} is not valid UTF-8 text")
        self.path = path
        self.line = line


class NoRecipients(StateError):
    def __init__(self, path: pathlib.Path):
        super().__init__(f"Keylist {path} has no keys to encrypt for")


class KeyDirectoryNotWritable(StateError):
    def __init__(self, path: pathlib.Path):
        super().__init__(f"Can't write to key directory {path}")


class FileNotFound(NotFoundError):
    def __init__(self, path: pathlib.Path):
        super().__init__(f"File {path} does not exist")
        self.path = path


class InvalidKeyID(NotFoundError):
    def __init__(self, key_id: str):
        super().__init__(f"No public key matching {key_id}")
        self.key_id = key_id


class KeyAlreadyShared(ConflictError):
    def __init__(self, path: pathlib.Path):
        super().__init__(
            f"{path} already exists - remove it and its keylist entry "
            f"to share a new key under that name")
        self.path = path


def describe(error: Exception) -> str:
    if isinstance(error, click.ClickException):
        return error.format_message()
    return str(error)


class BatchFailed(ConfidantException):
    """A file in a batch failed; files before it were completed."""

    def __init__(
            self,
            operation: str,
            path: pathlib.Path,
            completed: typing.Sequence[typing.Any],
            requested: int,
            cause: Exception):
        super().__init__(
            f"Failed to {operation} {path} "
            f"({len(completed)} of {requested} files completed): "
            f"{describe(cause)}")
        self.operation = operation
        self.path = path
        self.completed = tuple(completed)
        self.requested = requested
        self.cause = cause
