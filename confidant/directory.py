"""
Locate the shared directory of public keys.

The key directory is found by searching the starting directory and each of
its parents. When there isn't one, a new one belongs in the starting
directory; it is only created when something is written to it.
"""

import logging
import pathlib
import typing

import attr

from .exceptions import KeyDirectoryNotWritable

log = logging.getLogger(__name__)

KEY_DIRECTORY_NAME = '.gpg-keys'
KEYLIST_NAME = 'keylist'
PUBLIC_KEY_SUFFIX = '.pub'


def find_key_directory(start: pathlib.Path) -> typing.Optional[pathlib.Path]:
    """Return the nearest key directory in start or its parents."""
    start = start.resolve()
    for directory in (start, *start.parents):
        candidate = directory / KEY_DIRECTORY_NAME
        if candidate.is_dir():
            log.debug(f"Found key directory {candidate}")
            return candidate
    log.debug(f"No key directory found above {start}")
    return None


@attr.s(frozen=True)
class KeyDirectory:
    path: pathlib.Path = attr.ib(converter=pathlib.Path)

    @classmethod
    def locate(cls, start: pathlib.Path) -> 'KeyDirectory':
        found = find_key_directory(start)
        if found is None:
            return cls(start.resolve() / KEY_DIRECTORY_NAME)
        return cls(found)

    def __str__(self):
        return self.path.as_posix()

    @property
    def exists(self) -> bool:
        return self.path.is_dir()

    @property
    def keylist(self) -> pathlib.Path:
        return self.path / KEYLIST_NAME

    def key(self, name: str) -> pathlib.Path:
        return self.path / f'{name}{PUBLIC_KEY_SUFFIX}'

    def create(self) -> pathlib.Path:
        if not self.exists:
            log.info(f"Creating key directory {self.path}")
            try:
                self.path.mkdir(parents=True, exist_ok=True)
            except PermissionError as error:
                raise KeyDirectoryNotWritable(self.path) from error
        return self.path

    def write_key(self, name: str, data: bytes) -> pathlib.Path:
        path = self.key(name)
        self.create()
        log.debug(f"Writing public key {path}")
        try:
            path.write_bytes(data)
        except PermissionError as error:
            raise KeyDirectoryNotWritable(self.path) from error
        return path
