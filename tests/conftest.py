import pathlib
import typing

import click.testing
import pytest

import gringotts.cli
from gringotts import manifest
from gringotts.store import Store

from fakes import RECIPIENTS, FakeCrypto, RecordingStorage


@pytest.fixture()
def crypto() -> FakeCrypto:
    return FakeCrypto()


@pytest.fixture()
def storage(tmp_path) -> RecordingStorage:
    return RecordingStorage(tmp_path)


@pytest.fixture()
def store(tmp_path, crypto, storage) -> Store:
    return Store(alias='', path=tmp_path, crypto=crypto, storage=storage)


@pytest.fixture()
def write(tmp_path, crypto):
    """Write a manifest or a secret encrypted for some recipients."""

    def write_func(path: str, recipients: typing.Sequence[str], text: str = 'secret\n'):
        target: pathlib.Path = tmp_path / path
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.name == manifest.MANIFEST_NAME:
            target.write_bytes(manifest.encode(recipients))
        else:
            target.write_bytes(crypto.encrypt(
                text.encode('utf-8'), recipients, armour=path.endswith('.asc')))
        return target

    return write_func


@pytest.fixture()
def populated(write) -> typing.List[str]:
    """A store with a root manifest and a few secrets for its recipients."""
    write('.gpg-id', RECIPIENTS)
    write('baz.gpg', RECIPIENTS)
    write('foo/bar/baz.gpg', RECIPIENTS)
    write('foo/qux.asc', RECIPIENTS)
    return list(RECIPIENTS)


@pytest.fixture()
def invoke(tmp_path, crypto, monkeypatch):
    monkeypatch.setattr(gringotts.cli, 'GPG', lambda **kwargs: crypto)

    def invoke_func(arguments: typing.Sequence[str], exit_code: int = 0):
        assert all(isinstance(arg, str) for arg in arguments)
        runner = click.testing.CliRunner()
        result = runner.invoke(gringotts.cli.main, ['-p', str(tmp_path), *arguments])
        if result.exit_code != exit_code:
            message = f"Command gringotts {' '.join(arguments)} exited with {result.exit_code}"
            raise Exception(message) from result.exception
        return result.output.splitlines()

    return invoke_func
