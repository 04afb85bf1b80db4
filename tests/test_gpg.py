import pathlib
import subprocess

import pytest

from confidant.exceptions import ProviderError
from confidant.gpg import GPG, TRUST_ULTIMATE


class Recorder:
    def __init__(self, stdout=b'', returncode=0):
        self.calls = []
        self.stdout = stdout
        self.returncode = returncode

    def __call__(self, command, input=None, env=None, check=True, **kwargs):
        self.calls.append({'command': command, 'input': input, 'env': env})
        if check and self.returncode:
            raise subprocess.CalledProcessError(
                self.returncode, command, output=b'', stderr=b'gpg: no valid OpenPGP data found\n')
        return subprocess.CompletedProcess(command, self.returncode, self.stdout, b'')

    @property
    def command(self):
        return self.calls[-1]['command']


@pytest.fixture()
def run(monkeypatch):
    recorder = Recorder(stdout=b'output')
    monkeypatch.setattr(subprocess, 'run', recorder)
    return recorder


def test_command():
    assert GPG().command(['--decrypt'], armour=False) == ('gpg', '--yes', '--batch', '--decrypt')
    assert GPG(verbose=True).command(['--export'], armour=True) == (
        'gpg', '--yes', '--batch', '--armour', '--verbose', '--export')


def test_encrypt_for(run):
    assert GPG().encrypt_for(['AAAA', 'BBBB'], b'plaintext') == b'output'
    assert run.command[3:] == (
        '--recipient', 'AAAA', '--recipient', 'BBBB', '--output', '-', '--encrypt')
    assert run.calls[-1]['input'] == b'plaintext'


def test_decrypt_with(run):
    assert GPG().decrypt_with('AAAA', b'ciphertext') == b'output'
    assert run.command[3:] == ('--try-secret-key', 'AAAA', '--output', '-', '--decrypt')


def test_export_public_key(run):
    GPG().export_public_key('AAAA')
    assert run.command == ('gpg', '--yes', '--batch', '--armour', '--export', 'AAAA')


def test_set_trust(run):
    GPG().set_trust('AAAA', TRUST_ULTIMATE)
    assert run.command[3:] == ('--command-fd', '0', '--edit-key', 'AAAA', 'trust')
    assert run.calls[-1]['input'] == b'5\ny\nquit\n'


def test_sign_key(run):
    GPG().sign_key('AAAA', 'BBBB')
    assert run.command[3:] == ('--local-user', 'AAAA', '--sign-key', 'BBBB')


def test_has_key(monkeypatch):
    monkeypatch.setattr(subprocess, 'run', Recorder(returncode=2))
    assert not GPG().has_key('AAAA')

    monkeypatch.setattr(subprocess, 'run', Recorder(returncode=0))
    assert GPG().has_key('AAAA')


def test_home(run):
    GPG(home=pathlib.Path('/keys')).import_public_key(b'key')
    assert run.calls[-1]['env']['GNUPGHOME'] == '/keys'


def test_failure(monkeypatch, caplog):
    monkeypatch.setattr(subprocess, 'run', Recorder(returncode=2))

    with pytest.raises(ProviderError) as error:
        GPG().decrypt_with(None, b'garbage')

    assert "exit status 2" in error.value.format_message()
    assert "no valid OpenPGP data found" in caplog.text


def test_missing_program(monkeypatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError('gpg')

    monkeypatch.setattr(subprocess, 'run', missing)

    with pytest.raises(ProviderError):
        GPG(program='gpg-missing').import_public_key(b'key')
