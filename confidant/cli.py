import functools
import logging
import os.path
import pathlib
import sys
import typing

import attr
import click

from . import __doc__, __version__
from .directory import KeyDirectory
from .exchange import KeyExchange
from .gpg import GPG, Provider
from .keylist import Keylist
from .secrets import FilePair, Workflow, clean as clean_directory
from .utils import find_git_directory, unignored

log = logging.getLogger(__name__)


@functools.lru_cache()
def rel(path: pathlib.Path) -> str:
    """
    Convert a path to a relative Path.

    Returns a string as these should only be used for presentation.
    """
    return os.path.relpath(path.as_posix(), pathlib.Path.cwd().as_posix())


def enc(pair: FilePair) -> str:
    """Style a path to a encrypted file."""
    return click.style(rel(pair.encrypted), fg='green')


def dec(pair: FilePair) -> str:
    """Style a path to a decrypted file."""
    return click.style(rel(pair.decrypted), fg='red')


class PathType(click.Path):
    def convert(self, value, param, ctx):
        return pathlib.Path(super().convert(value, param, ctx))


class Group(click.Group):
    """A command group that exits with status 1 for every kind of error."""

    def main(self, *args, **kwargs):
        kwargs['standalone_mode'] = False
        try:
            return super().main(*args, **kwargs)
        except click.ClickException as error:
            error.show()
        except click.Abort:
            click.echo("Aborted!", err=True)
        except OSError as error:
            log.debug("Unhandled error", exc_info=True)
            click.echo(f"Error: {error}", err=True)
        sys.exit(1)


@attr.s(frozen=True)
class Confidant:
    """Settings shared by every command in one invocation."""

    directory: KeyDirectory = attr.ib()
    gpg: Provider = attr.ib()
    identity: typing.Optional[str] = attr.ib(default=None)

    def keylist(self, required: bool = True) -> Keylist:
        if not required and not self.directory.keylist.exists():
            return Keylist(self.directory.keylist)
        return Keylist.load(self.directory.keylist)

    def exchange(self, keylist: typing.Optional[Keylist] = None) -> KeyExchange:
        return KeyExchange(
            directory=self.directory,
            keylist=self.keylist() if keylist is None else keylist,
            gpg=self.gpg,
            identity=self.identity)

    def workflow(self, required: bool = True) -> Workflow:
        return Workflow(
            keylist=self.keylist(required),
            gpg=self.gpg,
            identity=self.identity)


files_argument = click.argument(
    'files',
    type=PathType(dir_okay=False),
    required=False,
    nargs=-1)


@click.group(cls=Group, help=__doc__, no_args_is_help=False)
@click.option(
    '-k', '--key-directory',
    envvar='CONFIDANT_KEY_DIRECTORY',
    type=PathType(file_okay=False, dir_okay=True),
    default=None,
    help="Defaults to the nearest .gpg-keys directory.")
@click.option(
    '-u', '--identity',
    envvar='CONFIDANT_IDENTITY',
    metavar='ID',
    default=None,
    help="Key used to decrypt and sign. Defaults to gpg's default key.")
@click.option(
    '--gnupghome',
    envvar='GNUPGHOME',
    type=PathType(file_okay=False, dir_okay=True),
    default=None,
    help="Directory containing the gpg keyring.")
@click.option(
    '-d', '--debug', 'debug',
    default=False,
    is_flag=True,
    help="Enable debug logging.")
@click.option(
    '-v', '--verbose', 'gpg_verbose',
    default=False,
    is_flag=True,
    help="Display GPG's normal STDERR output.")
@click.pass_context
def main(
        ctx,
        key_directory: typing.Optional[pathlib.Path],
        identity: typing.Optional[str],
        gnupghome: typing.Optional[pathlib.Path],
        debug: bool,
        gpg_verbose: bool):
    logging.basicConfig(level=(logging.DEBUG if debug else logging.WARNING))

    if key_directory:
        directory = KeyDirectory(key_directory.resolve())
    else:
        directory = KeyDirectory.locate(pathlib.Path.cwd())
    log.debug(f"Using key directory {directory}")

    gpg = ctx.obj if isinstance(ctx.obj, Provider) else GPG(verbose=gpg_verbose, home=gnupghome)
    ctx.obj = Confidant(directory=directory, gpg=gpg, identity=identity)


@main.command()
def version():
    """Show the application version."""
    click.echo(f"confidant {__version__}")


@main.command()
@click.argument('key_id', metavar='KEYID')
@click.argument('name', metavar='KEYNAME', required=False)
@click.pass_obj
def share(c: Confidant, key_id: str, name: typing.Optional[str]):
    """
    Export a public key to the key directory and add it to the keylist.

    KEYNAME defaults to '<user>_<hostname>'.
    """
    keylist = c.keylist(required=False)
    key_id = c.exchange(keylist).share_key(key_id, name)
    click.echo(f"Shared {key_id} as {keylist[key_id]} in {rel(c.directory.path)}")


@main.command()
@click.pass_obj
def sync(c: Confidant):
    """Import, trust and sign every key in the keylist."""
    imported = c.exchange().sync()
    for key_id in imported:
        click.echo(f"Imported {key_id}")
    click.echo(f"Imported {len(imported)} new keys")


@main.command(name='list')
@click.pass_obj
def list_keys(c: Confidant):
    """List the keys in the keylist."""
    keylist = c.keylist()
    width = max((len(key_id) for key_id, _ in keylist), default=0)
    for key_id, name in keylist:
        click.echo(f"{click.style(key_id.ljust(width), fg='green')}  {name}")


@main.command()
@files_argument
@click.pass_obj
def encrypt(c: Confidant, files: typing.Sequence[pathlib.Path]):
    """Encrypt files for every key in the keylist."""
    pairs = c.workflow().encrypt_files(
        files, lambda p: click.echo(f"Encrypted {dec(p)} to {enc(p)}"))
    click.echo(f"Encrypted {len(pairs)} of {len(files)} files")


@main.command()
@files_argument
@click.pass_obj
def decrypt(c: Confidant, files: typing.Sequence[pathlib.Path]):
    """Decrypt .gpg files next to the encrypted file."""
    pairs = c.workflow(required=False).decrypt_files(
        files, lambda p: click.echo(f"Decrypted {enc(p)} to {dec(p)}"))
    click.echo(f"Decrypted {len(pairs)} of {len(files)} files")

    for path in unignored(p.decrypted for p in pairs):
        click.secho(
            f"Decrypted plaintext {rel(path)} is not ignored by git - "
            f"add it to .gitignore or run 'confidant clean' to remove it",
            fg='yellow', err=True)


@main.command()
@files_argument
@click.pass_obj
def reencrypt(c: Confidant, files: typing.Sequence[pathlib.Path]):
    """
    Encrypt .gpg files again for the keys now in the keylist.

    Run this after a key has been added to or removed from the keylist.
    """
    pairs = c.workflow().reencrypt_files(
        files, lambda p: click.echo(f"Re-encrypted {enc(p)}"))
    click.echo(f"Re-encrypted {len(pairs)} of {len(files)} files")


@main.command()
@click.argument(
    'directory',
    type=PathType(file_okay=False, dir_okay=True, exists=True),
    required=False)
def clean(directory: typing.Optional[pathlib.Path]):
    """
    Delete decrypted plaintext that has an encrypted .gpg file.

    DIR defaults to the current git repository, or the current directory.
    """
    root = directory or find_git_directory() or pathlib.Path.cwd()
    for path in clean_directory(root):
        click.echo(f"Deleted {click.style(rel(path), fg='red')}")


@main.command(name='export', hidden=True)
@click.pass_obj
def export_keys(c: Confidant):
    """Export every key in the keylist to the key directory."""
    for key_id in c.exchange().export_all():
        click.echo(f"Exported {key_id}")


@main.command(name='import', hidden=True)
@click.pass_obj
def import_keys(c: Confidant):
    """Import every key in the keylist, even if it is already present."""
    for key_id in c.exchange().import_all():
        click.echo(f"Imported {key_id}")


@main.command(name='trust', hidden=True)
@click.pass_obj
def trust_keys(c: Confidant):
    """Trust every key in the keylist ultimately."""
    for key_id in c.exchange().trust_all():
        click.echo(f"Trusted {key_id}")


@main.command(name='sign', hidden=True)
@click.pass_obj
def sign_keys(c: Confidant):
    """Sign every key in the keylist with the local identity."""
    for key_id in c.exchange().sign_all():
        click.echo(f"Signed {key_id}")
