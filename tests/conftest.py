import os
import pathlib
import typing

# Don't fail to import GitPython on machines without a git executable.
os.environ.setdefault('GIT_PYTHON_REFRESH', 'quiet')

import click.testing
import pytest

import confidant.cli
from confidant.directory import KeyDirectory
from confidant.keylist import Keylist

from fakes import ALICE, FakeGPG, armoured


@pytest.fixture()
def gpg() -> FakeGPG:
    return FakeGPG(keyring={ALICE}, secret={ALICE})


@pytest.fixture()
def workspace(tmp_path, monkeypatch) -> pathlib.Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def keydir(workspace) -> KeyDirectory:
    return KeyDirectory(workspace / '.gpg-keys')


@pytest.fixture()
def keylist(keydir) -> Keylist:
    """A keylist containing alice's shared key."""
    keydir.write_key('alice', armoured(ALICE))
    keylist = Keylist(keydir.keylist)
    keylist.append(ALICE, 'alice')
    return keylist


@pytest.fixture()
def invoke(gpg, workspace):
    def invoke_func(arguments: typing.Sequence[str], exit_code: int = 0):
        assert all(isinstance(arg, str) for arg in arguments)
        runner = click.testing.CliRunner()
        result = runner.invoke(confidant.cli.main, arguments, obj=gpg)
        if result.exit_code != exit_code:
            message = f"Command confidant {' '.join(arguments)} exited with {result.exit_code}"
            raise Exception(f"{message}\n{result.output}") from result.exception
        return result.output.splitlines()

    return invoke_func
