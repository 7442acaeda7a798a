"""
Each Incantation searches a store for its secrets and recipient manifests.
"""

import logging
import posixpath
import typing

from . import manifest
from .context import Context
from .secrets import Secret, is_secret
from .storage import Storage

log = logging.getLogger(__name__)

Found = typing.Tuple[typing.Sequence[Secret], typing.Sequence[str]]


class Incantation:
    def search(self, storage: Storage, scope: str, ctx: Context) -> Found:
        """Find the secrets and the scopes with manifests under a scope."""
        raise NotImplementedError

    def secrets(
            self,
            storage: Storage,
            scope: str,
            ctx: Context) -> typing.Sequence[Secret]:
        return self.search(storage, scope, ctx)[0]

    def scopes(
            self,
            storage: Storage,
            scope: str,
            ctx: Context) -> typing.Sequence[str]:
        return self.search(storage, scope, ctx)[1]


class NameIncantation(Incantation):
    """
    Search every directory of a store.

    Selects files ending in '.gpg' or '.asc' as secrets and directories
    containing a '.gpg-id' file as scopes. Hidden directories such as '.git'
    are not searched.
    """

    def search(self, storage: Storage, scope: str, ctx: Context) -> Found:
        log.debug(f"Searching for secrets in '{scope}'")
        secrets: typing.List[Secret] = []
        scopes: typing.List[str] = []

        pending = [scope]
        while pending:
            ctx.check()
            directory = pending.pop()
            for entry in storage.list_directory(directory):
                path = posixpath.join(directory, entry.name) if directory else entry.name
                if entry.directory:
                    if not self.hidden(entry.name):
                        pending.append(path)
                elif entry.name == manifest.MANIFEST_NAME:
                    scopes.append(directory)
                elif is_secret(entry.name) and not self.hidden(entry.name):
                    secrets.append(Secret(path))

        log.debug(f"Search found {len(secrets)} secrets and {len(scopes)} "
                  f"scopes in '{scope}'")
        return tuple(sorted(secrets)), tuple(sorted(scopes))

    @staticmethod
    def hidden(name: str) -> bool:
        return name.startswith('.')
