"""
Keep the key directory and the local keyring consistent.

Sharing exports a local public key into the key directory and registers it in
the keylist. Syncing imports, trusts and signs every listed key that isn't in
the local keyring yet, so gpg will encrypt for them without prompting.
"""

import contextlib
import logging
import typing

import attr

from .directory import KeyDirectory
from .exceptions import (
    InvalidKeyID,
    KeyAlreadyShared,
    NotFoundError,
    ProviderError,
    UsageError,
)
from .gpg import TRUST_ULTIMATE, Provider
from .keylist import Keylist
from .utils import bare_key_id, default_key_name

log = logging.getLogger(__name__)


def check_key_name(name: str) -> str:
    if not name or any(c.isspace() for c in name) or '/' in name or '\\' in name:
        raise UsageError(
            f"Key name {name!r} can't be empty or contain whitespace or slashes")
    if name.startswith('.'):
        raise UsageError(f"Key name {name!r} can't start with '.'")
    return name


@contextlib.contextmanager
def reporting(action: str) -> typing.Iterator[None]:
    """Name the key being worked on in provider errors."""
    try:
        yield
    except ProviderError as error:
        raise ProviderError(f"Failed to {action}: {error.format_message()}") from error


@attr.s(frozen=True)
class KeyExchange:
    directory: KeyDirectory = attr.ib()
    keylist: Keylist = attr.ib()
    gpg: Provider = attr.ib()
    identity: typing.Optional[str] = attr.ib(default=None)

    def share_key(self, reference: str, name: typing.Optional[str] = None) -> str:
        """
        Export a public key into the key directory and add it to the keylist.

        An existing key file with the same name is never replaced; it has to
        be removed by hand (along with its keylist entry) first.
        """
        key_id = bare_key_id(reference)
        name = check_key_name(name or default_key_name())
        path = self.directory.key(name)

        if path.exists():
            raise KeyAlreadyShared(path)

        self.directory.write_key(name, self.export_key(key_id))
        self.keylist.append(key_id, name)
        log.info(f"Shared {key_id} as {path}")
        return key_id

    def export_key(self, key_id: str) -> bytes:
        with reporting(f"export {key_id}"):
            data = self.gpg.export_public_key(key_id)
        if not data.strip():
            raise InvalidKeyID(key_id)
        return data

    def import_key(self, key_id: str, name: str) -> None:
        path = self.directory.key(name)
        if not path.is_file():
            raise NotFoundError(f"Public key {path} for {key_id} does not exist")
        log.info(f"Importing {key_id} ({name})")
        with reporting(f"import {key_id} from {path}"):
            self.gpg.import_public_key(path.read_bytes())

    def trust_key(self, key_id: str, level: int = TRUST_ULTIMATE) -> None:
        with reporting(f"trust {key_id}"):
            self.gpg.set_trust(key_id, level)

    def sign_key(self, key_id: str) -> None:
        with reporting(f"sign {key_id} with {self.identity or 'the default key'}"):
            self.gpg.sign_key(self.identity, key_id)

    def sync(self) -> typing.Sequence[str]:
        """Import, trust and sign listed keys missing from the local keyring."""
        imported: typing.List[str] = []
        for key_id, name in self.keylist:
            if self.gpg.has_key(key_id):
                log.debug(f"Skipping {key_id} ({name}), already in the keyring")
                continue
            self.import_key(key_id, name)
            self.trust_key(key_id)
            self.sign_key(key_id)
            imported.append(key_id)
        return tuple(imported)

    def export_all(self) -> typing.Sequence[str]:
        """Re-export every listed key and rewrite the keylist."""
        for key_id, name in self.keylist:
            self.directory.write_key(name, self.export_key(key_id))
        self.keylist.save()
        return self.keylist.recipients

    def import_all(self) -> typing.Sequence[str]:
        """Import every listed key, even ones already in the keyring."""
        for key_id, name in self.keylist:
            self.import_key(key_id, name)
        return self.keylist.recipients

    def trust_all(self, level: int = TRUST_ULTIMATE) -> typing.Sequence[str]:
        for key_id, _ in self.keylist:
            self.trust_key(key_id, level)
        return self.keylist.recipients

    def sign_all(self) -> typing.Sequence[str]:
        for key_id, _ in self.keylist:
            self.sign_key(key_id)
        return self.keylist.recipients
