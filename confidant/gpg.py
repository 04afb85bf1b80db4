import logging
import os
import pathlib
import subprocess
import typing

import attr

from .exceptions import ProviderError

log = logging.getLogger(__name__)

# Owner trust levels as used by 'gpg --edit-key KEYID trust'.
TRUST_UNKNOWN = 1
TRUST_NONE = 2
TRUST_MARGINAL = 3
TRUST_FULL = 4
TRUST_ULTIMATE = 5


class Provider:
    """
    The public key cryptography used to encrypt files for a set of keys.

    Identities and recipients are key IDs (or anything else the provider can
    resolve to a key). An identity of None means the provider's default key.
    """

    def encrypt_for(
            self,
            recipients: typing.Iterable[str],
            plaintext: bytes) -> bytes:
        raise NotImplementedError

    def decrypt_with(
            self,
            identity: typing.Optional[str],
            ciphertext: bytes) -> bytes:
        raise NotImplementedError

    def import_public_key(self, data: bytes) -> None:
        raise NotImplementedError

    def export_public_key(self, key_id: str) -> bytes:
        """Return an armoured public key, or nothing if the key is unknown."""
        raise NotImplementedError

    def set_trust(self, key_id: str, level: int) -> None:
        raise NotImplementedError

    def has_key(self, key_id: str) -> bool:
        raise NotImplementedError

    def sign_key(self, identity: typing.Optional[str], key_id: str) -> None:
        raise NotImplementedError


@attr.s(frozen=True)
class GPG(Provider):
    """Run the gpg command."""

    verbose: bool = attr.ib(default=False)
    home: typing.Optional[pathlib.Path] = attr.ib(default=None)
    program: str = attr.ib(default='gpg')

    def command(
            self,
            arguments: typing.Sequence[str],
            armour: bool = False) -> typing.Tuple[str, ...]:
        command: typing.Tuple[str, ...] = (self.program, '--yes', '--batch')
        if armour:
            command = (*command, '--armour')
        if self.verbose:
            command = (*command, '--verbose')
        return (*command, *arguments)

    def run(self,
            arguments: typing.Sequence[str],
            armour: bool = False,
            stdin: typing.Optional[bytes] = None,
            check: bool = True) -> subprocess.CompletedProcess:
        env = dict(os.environ)
        if self.home:
            env['GNUPGHOME'] = self.home.as_posix()
        command = self.command(arguments, armour)
        log.debug(f"Running {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
                check=check)
        except FileNotFoundError as error:
            raise ProviderError(f"Could not run {self.program}") from error
        except subprocess.CalledProcessError as error:
            for line in error.stderr.decode('utf-8', 'replace').splitlines():
                log.error(line)
            raise ProviderError(
                f"'{' '.join(command)}' failed with exit status "
                f"{error.returncode}") from error
        if self.verbose:
            for line in result.stderr.decode('utf-8', 'replace').splitlines():
                log.warning(line)
        return result

    def encrypt_for(
            self,
            recipients: typing.Iterable[str],
            plaintext: bytes) -> bytes:
        args: typing.List[str] = []
        for recipient in recipients:
            args += ['--recipient', recipient]
        args += ['--output', '-', '--encrypt']
        return self.run(args, stdin=plaintext).stdout

    def decrypt_with(
            self,
            identity: typing.Optional[str],
            ciphertext: bytes) -> bytes:
        args: typing.List[str] = []
        if identity:
            args += ['--try-secret-key', identity]
        args += ['--output', '-', '--decrypt']
        return self.run(args, stdin=ciphertext).stdout

    def import_public_key(self, data: bytes) -> None:
        log.debug("Importing public key")
        self.run(['--import'], stdin=data)

    def export_public_key(self, key_id: str) -> bytes:
        log.debug(f"Exporting public key {key_id}")
        return self.run(['--export', key_id], armour=True).stdout

    def set_trust(self, key_id: str, level: int) -> None:
        log.debug(f"Setting trust for {key_id} to {level}")
        commands = f"{level}\ny\nquit\n".encode('utf-8')
        self.run(['--command-fd', '0', '--edit-key', key_id, 'trust'],
                 stdin=commands)

    def has_key(self, key_id: str) -> bool:
        return self.run(['--list-keys', key_id], check=False).returncode == 0

    def sign_key(self, identity: typing.Optional[str], key_id: str) -> None:
        log.debug(f"Signing {key_id} with {identity or 'the default key'}")
        args: typing.List[str] = []
        if identity:
            args += ['--local-user', identity]
        args += ['--sign-key', key_id]
        self.run(args)
