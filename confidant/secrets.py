import logging
import pathlib
import typing

import attr
import click

from .exceptions import (
    BatchFailed,
    FileNotFound,
    NoFilesSpecified,
    NoRecipients,
    UsageError,
)
from .gpg import Provider
from .keylist import Keylist
from .utils import replace_file, write_private

log = logging.getLogger(__name__)

SUFFIX = '.gpg'


@attr.s(frozen=True, kw_only=True)
class FilePair:
    decrypted: pathlib.Path = attr.ib()
    encrypted: pathlib.Path = attr.ib()

    @classmethod
    def from_plaintext(cls, path: pathlib.Path) -> 'FilePair':
        return cls(decrypted=path, encrypted=path.with_name(path.name + SUFFIX))

    @classmethod
    def from_ciphertext(cls, path: pathlib.Path) -> 'FilePair':
        if path.suffix != SUFFIX:
            raise UsageError(
                f"I don't know how to decrypt {path.name}, "
                f"it doesn't end with {SUFFIX}")
        return cls(decrypted=path.with_name(path.name[:-len(SUFFIX)]), encrypted=path)

    def __str__(self):
        return self.encrypted.name


Callback = typing.Callable[[FilePair], None]


@attr.s(frozen=True)
class Workflow:
    """Encrypt and decrypt files for everyone in a keylist."""

    keylist: Keylist = attr.ib()
    gpg: Provider = attr.ib()
    identity: typing.Optional[str] = attr.ib(default=None)

    def recipients(self) -> typing.Sequence[str]:
        if not self.keylist.recipients:
            raise NoRecipients(self.keylist.path)
        return self.keylist.recipients

    def encrypt_file(self, path: pathlib.Path) -> FilePair:
        pair = FilePair.from_plaintext(path)
        if not pair.decrypted.is_file():
            raise FileNotFound(pair.decrypted)
        recipients = self.recipients()
        log.debug(f"Encrypting {pair.decrypted} for {len(recipients)} keys")
        ciphertext = self.gpg.encrypt_for(recipients, pair.decrypted.read_bytes())
        pair.encrypted.write_bytes(ciphertext)
        return pair

    def decrypt_file(self, path: pathlib.Path) -> FilePair:
        pair = FilePair.from_ciphertext(path)
        if not pair.encrypted.is_file():
            raise FileNotFound(pair.encrypted)
        log.debug(f"Decrypting {pair.encrypted} to {pair.decrypted}")
        plaintext = self.gpg.decrypt_with(self.identity, pair.encrypted.read_bytes())
        write_private(pair.decrypted, plaintext)
        return pair

    def reencrypt_file(self, path: pathlib.Path) -> FilePair:
        """
        Encrypt a file again for the keys currently in the keylist.

        The plaintext is only held in memory, and the new ciphertext replaces
        the old one with a rename, so an interrupted re-encryption leaves
        either the old or the new ciphertext and never a plaintext file. A
        decrypted plaintext that already exists is not touched.
        """
        pair = FilePair.from_ciphertext(path)
        if not pair.encrypted.is_file():
            raise FileNotFound(pair.encrypted)
        recipients = self.recipients()
        log.debug(f"Re-encrypting {pair.encrypted} for {len(recipients)} keys")
        plaintext = self.gpg.decrypt_with(self.identity, pair.encrypted.read_bytes())
        replace_file(pair.encrypted, self.gpg.encrypt_for(recipients, plaintext))
        return pair

    def batch(
            self,
            operation: str,
            function: typing.Callable[[pathlib.Path], FilePair],
            paths: typing.Sequence[pathlib.Path],
            callback: typing.Optional[Callback] = None) -> typing.Sequence[FilePair]:
        """Run function on each path in turn, stopping at the first failure."""
        if not paths:
            raise NoFilesSpecified(operation)

        completed: typing.List[FilePair] = []
        for path in paths:
            try:
                pair = function(path)
            except (click.ClickException, OSError) as error:
                raise BatchFailed(operation, path, completed, len(paths), error) from error
            completed.append(pair)
            if callback:
                callback(pair)

        log.info(f"Completed {operation} for {len(completed)} files")
        return tuple(completed)

    def encrypt_files(self, paths, callback: typing.Optional[Callback] = None):
        return self.batch('encrypt', self.encrypt_file, paths, callback)

    def decrypt_files(self, paths, callback: typing.Optional[Callback] = None):
        return self.batch('decrypt', self.decrypt_file, paths, callback)

    def reencrypt_files(self, paths, callback: typing.Optional[Callback] = None):
        return self.batch('reencrypt', self.reencrypt_file, paths, callback)


def clean(root: pathlib.Path) -> typing.Sequence[pathlib.Path]:
    """Delete every plaintext file under root that has an encrypted sibling."""
    log.info(f"Searching for encrypted files in {root}")
    deleted: typing.List[pathlib.Path] = []
    for encrypted in sorted(root.glob(f'**/*{SUFFIX}')):
        if not encrypted.is_file() or encrypted.suffix != SUFFIX:
            continue
        pair = FilePair.from_ciphertext(encrypted)
        if pair.decrypted.is_file():
            log.debug(f"Deleting {pair.decrypted}")
            pair.decrypted.unlink()
            deleted.append(pair.decrypted)
    log.info(f"Deleted {len(deleted)} plaintext files from {root}")
    return tuple(deleted)
