"""
The keylist maps key IDs to names and decides who files are encrypted for.

The file has one 'KEYID NAME' entry per line. Blank lines and lines starting
with '#' are ignored, fields after the second are ignored, and a key ID that
appears more than once takes the name from its last line.
"""

import logging
import pathlib
import typing

import attr

from .exceptions import (
    KeyDirectoryNotWritable,
    MalformedKeylist,
    MissingKeylist,
    UnreadableKeylist,
)

log = logging.getLogger(__name__)

Entries = typing.Dict[str, str]


def parse(path: pathlib.Path, text: str) -> Entries:
    entries: Entries = {}
    for number, line in enumerate(text.splitlines(), start=1):
        fields = line.split()
        if not fields or fields[0].startswith('#'):
            continue
        if len(fields) < 2:
            raise MalformedKeylist(path, number, line)
        key_id, name = fields[:2]
        if key_id in entries:
            log.warning(f"Key {key_id} is listed more than once in {path}, "
                        f"using the name {name!r} from line {number}")
        entries[key_id] = name
    return entries


def format_entry(key_id: str, name: str) -> str:
    return f"{key_id} {name}\n"


@attr.s(frozen=True)
class Keylist:
    path: pathlib.Path = attr.ib()
    entries: Entries = attr.ib(factory=dict)

    @classmethod
    def load(cls, path: pathlib.Path) -> 'Keylist':
        log.debug(f"Loading keylist {path}")
        if not path.is_file():
            raise MissingKeylist(path)
        data = path.read_bytes()
        try:
            text = data.decode('utf-8')
        except UnicodeDecodeError as error:
            line = data[:error.start].count(b'\n') + 1
            raise UnreadableKeylist(path, line) from error
        entries = parse(path, text)
        log.info(f"Loaded {len(entries)} keys from {path}")
        return cls(path, entries)

    def __iter__(self) -> typing.Iterator[typing.Tuple[str, str]]:
        return iter(self.entries.items())

    def __len__(self):
        return len(self.entries)

    def __contains__(self, key_id):
        return key_id in self.entries

    def __getitem__(self, key_id: str) -> str:
        return self.entries[key_id]

    @property
    def recipients(self) -> typing.Tuple[str, ...]:
        return tuple(self.entries.keys())

    def append(self, key_id: str, name: str) -> None:
        """Add an entry to the end of the file, creating it if needed."""
        log.debug(f"Adding {key_id} {name} to {self.path}")
        prefix = ''
        if self.path.exists():
            data = self.path.read_bytes()
            if data and not data.endswith(b'\n'):
                prefix = '\n'
        try:
            with self.path.open('a', encoding='utf-8') as file:
                file.write(prefix + format_entry(key_id, name))
        except PermissionError as error:
            raise KeyDirectoryNotWritable(self.path.parent) from error
        self.entries[key_id] = name

    def save(self) -> None:
        """Rewrite the file from the loaded entries."""
        log.debug(f"Writing {len(self.entries)} keys to {self.path}")
        try:
            self.path.write_text(
                ''.join(format_entry(k, n) for k, n in self), encoding='utf-8')
        except PermissionError as error:
            raise KeyDirectoryNotWritable(self.path.parent) from error
