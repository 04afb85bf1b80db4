import getpass
import os
import pathlib
import socket
import tempfile
import typing

import git


def find_git_directory() -> typing.Optional[pathlib.Path]:
    try:
        repo = git.Repo(search_parent_directories=True)
    except git.exc.InvalidGitRepositoryError:
        return None
    return pathlib.Path(repo.working_dir)


def unignored(paths: typing.Iterable[pathlib.Path]) -> typing.Sequence[pathlib.Path]:
    """
    Find paths that are inside a git working tree but not ignored by it.

    Paths outside of any git repository are never returned.
    """
    found: typing.List[pathlib.Path] = []
    for path in paths:
        try:
            repo = git.Repo(path.resolve().parent, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            continue
        if not repo.ignored(path.resolve().as_posix()):
            found.append(path)
    return tuple(found)


def default_key_name() -> str:
    return f"{getpass.getuser()}_{socket.gethostname()}"


def bare_key_id(reference: str) -> str:
    """Reduce a key reference like 'rsa4096/0xABCD' to 'ABCD'."""
    key_id = reference.strip().split('/')[-1]
    if key_id.lower().startswith('0x'):
        key_id = key_id[2:]
    return key_id


def replace_file(path: pathlib.Path, data: bytes) -> None:
    """Write data to a temporary file beside path and rename it over path."""
    fd, name = tempfile.mkstemp(
        dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'wb') as file:
            file.write(data)
        if path.exists():
            os.chmod(name, path.stat().st_mode & 0o777)
        os.replace(name, path)
    except BaseException:
        os.unlink(name)
        raise


def write_private(path: pathlib.Path, data: bytes) -> None:
    """Write data to path, readable by the owner only."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'wb') as file:
        os.fchmod(file.fileno(), 0o600)
        file.write(data)
