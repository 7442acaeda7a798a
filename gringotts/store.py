import logging
import pathlib
import typing

import attr

from . import manifest
from .context import Context
from .gpg import Crypto
from .incantations import NameIncantation
from .mutator import Mutator
from .reencrypt import Reencryptor, ReencryptReport
from .resolver import Resolver
from .storage import Storage
from .utils import GringottsException, normalise

log = logging.getLogger(__name__)


@attr.s(frozen=True)
class Store:
    """
    The recipients of one store, identified by its alias.

    Reads and writes all go through the storage backend, and secrets are
    re-encrypted with the crypto backend whenever their recipients change.
    """

    alias: str = attr.ib()
    path: pathlib.Path = attr.ib(converter=pathlib.Path)
    crypto: Crypto = attr.ib()
    storage: Storage = attr.ib()

    def __str__(self):
        return self.alias or self.path.as_posix()

    @property
    def resolver(self) -> Resolver:
        return Resolver(self.storage, NameIncantation())

    @property
    def reencryptor(self) -> Reencryptor:
        return Reencryptor(self.storage, self.crypto, self.resolver)

    @property
    def mutator(self) -> Mutator:
        return Mutator(self.storage, self.crypto, self.resolver, self.reencryptor)

    def id_file(self, scope: str = '') -> str:
        return manifest.path(normalise(scope))

    def recipients(
            self,
            path: str = '',
            ctx: typing.Optional[Context] = None) -> typing.List[str]:
        """The recipients of a path, or an empty list if they can't be read."""
        try:
            return self.get_recipients(path, ctx)
        except GringottsException as error:
            log.error(f"Could not read recipients of '{path}' in {self}: "
                      f"{error.format_message()}")
            return []

    def get_recipients(
            self,
            path: str = '',
            ctx: typing.Optional[Context] = None) -> typing.List[str]:
        return self.resolver.resolve(path, ctx or Context())

    def list_recipients(
            self,
            ctx: typing.Optional[Context] = None) -> typing.List[str]:
        return self.resolver.resolve_all(ctx or Context())

    def scopes(self, ctx: typing.Optional[Context] = None) -> typing.List[str]:
        return self.resolver.scopes(ctx or Context())

    def add_recipient(
            self,
            recipient: str,
            ctx: typing.Optional[Context] = None,
            scope: str = '') -> ReencryptReport:
        log.info(f"Adding {recipient} to '{scope}' in {self}")
        report = self.mutator.add(scope, recipient, ctx or Context())
        return report.raise_for_failures()

    def remove_recipient(
            self,
            recipient: str,
            ctx: typing.Optional[Context] = None,
            scope: str = '') -> ReencryptReport:
        log.info(f"Removing {recipient} from '{scope}' in {self}")
        report = self.mutator.remove(scope, recipient, ctx or Context())
        return report.raise_for_failures()

    def remove_scope(
            self,
            scope: str,
            ctx: typing.Optional[Context] = None) -> ReencryptReport:
        log.info(f"Removing the manifest of '{scope}' in {self}")
        report = self.mutator.delete(scope, ctx or Context())
        return report.raise_for_failures()

    def save_recipients(self, ctx: typing.Optional[Context] = None) -> None:
        ctx = ctx or Context()
        recipients = self.get_recipients('', ctx)
        self.mutator.save('', recipients, "Updated recipients", True, ctx)

    def reencrypt(
            self,
            scope: str = '',
            ctx: typing.Optional[Context] = None,
            paths: typing.Optional[typing.Iterable[str]] = None) -> ReencryptReport:
        """
        Re-encrypt the secrets of a scope for its current recipients.

        Used to finish a re-encryption that failed part way through.
        """
        ctx = ctx or Context()
        scope = normalise(scope)
        governing, recipients = self.resolver.lookup(scope, ctx)
        if governing is None:
            raise GringottsException(f"No recipients are set for '{scope}' in {self}")

        if paths is None and governing != scope:
            secrets = self.resolver.incantation.secrets(self.storage, scope, ctx)
            paths = [secret.path for secret in secrets]

        report = self.reencryptor.reencrypt(
            governing, (), recipients, ctx, paths=paths)
        return report.raise_for_failures()
