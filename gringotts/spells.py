import pathlib
import typing

from .gpg import GPG, Crypto
from .storage import FileStorage, GitStorage, Storage
from .store import Store
from .utils import is_git_directory


def vault(
        directory: pathlib.Path,
        alias: str = '',
        crypto: typing.Optional[Crypto] = None) -> Store:
    """Open the store in a directory, committing changes if it's a git work tree."""
    storage: Storage = (GitStorage(directory) if is_git_directory(directory)
                        else FileStorage(directory))
    return Store(
        alias=alias,
        path=directory,
        crypto=crypto or GPG(),
        storage=storage)
