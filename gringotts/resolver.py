import logging
import typing

import attr

from . import manifest
from .context import Context
from .incantations import Incantation, NameIncantation
from .storage import Storage
from .utils import ManifestReadFailed, parents

log = logging.getLogger(__name__)


@attr.s(frozen=True)
class Resolver:
    """
    Find the recipients of secrets from the nearest manifest above them.

    The nearest manifest replaces the recipients of every manifest above it,
    lists are never merged. Manifests are read on every call.
    """

    storage: Storage = attr.ib()
    incantation: Incantation = attr.ib(factory=NameIncantation)

    def read(self, scope: str) -> typing.Optional[typing.List[str]]:
        """Read the manifest at exactly this scope, or None if there isn't one."""
        path = manifest.path(scope)
        try:
            data = self.storage.read_file(path)
        except FileNotFoundError:
            return None
        except OSError as error:
            raise ManifestReadFailed(f"Could not read {path}: {error}") from error
        return manifest.decode(data)

    def lookup(
            self,
            path: str,
            ctx: Context) -> typing.Tuple[typing.Optional[str], typing.List[str]]:
        for scope in parents(path):
            ctx.check()
            recipients = self.read(scope)
            if recipients is not None:
                log.debug(f"Recipients for '{path}' are from '{manifest.path(scope)}'")
                return scope, recipients
        log.debug(f"No manifest found for '{path}'")
        return None, []

    def find(self, path: str, ctx: Context) -> typing.Optional[str]:
        """The scope whose manifest applies to a path."""
        return self.lookup(path, ctx)[0]

    def resolve(self, path: str, ctx: Context) -> typing.List[str]:
        return self.lookup(path, ctx)[1]

    def resolve_all(self, ctx: Context) -> typing.List[str]:
        """Every recipient that can decrypt something in the store."""
        recipients = set(self.resolve('', ctx))
        for secret in self.incantation.secrets(self.storage, '', ctx):
            recipients.update(self.resolve(secret.path, ctx))
        return sorted(recipients)

    def scopes(self, ctx: Context) -> typing.List[str]:
        return list(self.incantation.scopes(self.storage, '', ctx))
