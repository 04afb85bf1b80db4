import pathlib
import shutil
import stat

import git
import pytest

from confidant.utils import bare_key_id, replace_file, unignored, write_private


@pytest.mark.parametrize('reference', [
    'ABCD1234',
    '0xABCD1234',
    'rsa4096/ABCD1234',
    'rsa4096/0xABCD1234',
])
def test_bare_key_id(reference):
    assert bare_key_id(reference) == 'ABCD1234'


def test_unignored_outside_git(tmp_path):
    assert unignored([tmp_path / 'secret.txt']) == ()


def test_replace_file_keeps_mode(tmp_path):
    path = tmp_path / 'secret.txt.gpg'
    path.write_bytes(b'old')
    path.chmod(0o640)

    replace_file(path, b'new')

    assert path.read_bytes() == b'new'
    assert stat.S_IMODE(path.stat().st_mode) == 0o640
    assert list(tmp_path.iterdir()) == [path]


def test_write_private(tmp_path):
    path = tmp_path / 'secret.txt'
    path.write_bytes(b'a much longer old plaintext')
    path.chmod(0o644)

    write_private(path, b'new')

    assert path.read_bytes() == b'new'
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


needs_git = pytest.mark.skipif(shutil.which('git') is None, reason="git is not installed")


@pytest.fixture()
def repository(tmp_path, monkeypatch):
    git.Repo.init(tmp_path)
    (tmp_path / 'sub').mkdir()
    monkeypatch.chdir(tmp_path / 'sub')
    return tmp_path


@needs_git
def test_unignored_relative_to_working_directory(repository):
    (repository / '.gitignore').write_text("/secret.txt\n")

    assert unignored([pathlib.Path('secret.txt')]) == (pathlib.Path('secret.txt'),)


@needs_git
def test_ignored_relative_to_working_directory(repository):
    (repository / '.gitignore').write_text("/sub/secret.txt\n")

    assert unignored([pathlib.Path('secret.txt')]) == ()
