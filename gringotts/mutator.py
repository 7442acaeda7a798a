import logging
import posixpath
import typing

import attr

from . import manifest
from .context import Context
from .gpg import Crypto
from .reencrypt import Reencryptor, ReencryptReport
from .resolver import Resolver
from .storage import Storage
from .utils import (
    GringottsException, ManifestAlreadyExists, ManifestWriteFailed,
    WouldRemoveLastRootRecipient, normalise)

log = logging.getLogger(__name__)


@attr.s(frozen=True)
class Mutator:
    """
    Change the recipients of a scope and re-encrypt the secrets it covers.

    The manifest change is recorded before any secret is re-encrypted, so an
    interrupted re-encryption can be finished by running it again.
    """

    storage: Storage = attr.ib()
    crypto: Crypto = attr.ib()
    resolver: Resolver = attr.ib()
    reencryptor: Reencryptor = attr.ib()

    def check(self, recipients: typing.Iterable[str]) -> None:
        """
        Warn about recipients the crypto backend doesn't recognise.

        Unrecognised recipients are still allowed, as their keys may not have
        been imported yet. RecipientInvalid from the backend is not caught.
        """
        for recipient in recipients:
            if not self.crypto.is_recognized_recipient(recipient):
                log.warning(f"Recipient {recipient} is not recognized, "
                            f"check their public key has been imported")

    def add(self, scope: str, recipient: str, ctx: Context) -> ReencryptReport:
        scope, recipient = normalise(scope), recipient.strip()
        if not recipient:
            raise GringottsException("Recipient IDs can't be empty")
        old = self.resolver.resolve(scope, ctx)
        if recipient in old:
            log.info(f"Recipient {recipient} is already in '{scope}'")
            return ReencryptReport(scope=scope)

        new = [*old, recipient]
        self.save(scope, new, f"Added Recipient {recipient}", True, ctx)
        return self.reencryptor.reencrypt(scope, old, new, ctx)

    def remove(self, scope: str, recipient: str, ctx: Context) -> ReencryptReport:
        scope, recipient = normalise(scope), recipient.strip()
        if not recipient:
            raise GringottsException("Recipient IDs can't be empty")
        old = self.resolver.resolve(scope, ctx)
        if recipient not in old:
            log.info(f"Recipient {recipient} is not in '{scope}'")
            return ReencryptReport(scope=scope)

        new = [r for r in old if r != recipient]
        self.save(scope, new, f"Removed Recipient {recipient}", True, ctx)
        return self.reencryptor.reencrypt(scope, old, new, ctx)

    def save(
            self,
            scope: str,
            recipients: typing.Sequence[str],
            description: str,
            overwrite: bool,
            ctx: Context) -> None:
        scope = normalise(scope)
        path = manifest.path(scope)
        recipients = manifest.dedup(r.strip() for r in recipients if r.strip())

        if not scope and not recipients:
            raise WouldRemoveLastRootRecipient(
                "The store root must keep at least one recipient, "
                "or nobody could decrypt it")
        if not overwrite and self.resolver.read(scope) is not None:
            raise ManifestAlreadyExists(f"{path} already exists")

        self.check(recipients)
        ctx.check()

        log.info(f"Saving {len(recipients)} recipients to {path}")
        try:
            self.storage.write_file(path, manifest.encode(recipients))
            self.storage.record_change([path], ctx.describe(description))
        except OSError as error:
            raise ManifestWriteFailed(f"Could not save {path}: {error}") from error

    def delete(self, scope: str, ctx: Context) -> ReencryptReport:
        """
        Remove the manifest of a scope so it inherits its recipients again.

        The secrets it covered are re-encrypted for the inherited recipients.
        """
        scope = normalise(scope)
        if not scope:
            raise WouldRemoveLastRootRecipient(
                "The manifest at the store root can't be removed")

        old = self.resolver.read(scope)
        if old is None:
            log.info(f"'{scope}' has no manifest of its own")
            return ReencryptReport(scope=scope)

        inherited, new = self.resolver.lookup(posixpath.dirname(scope), ctx)
        if inherited is None:
            raise WouldRemoveLastRootRecipient(
                f"'{scope}' has no manifest above it to inherit recipients from")

        # Find what this scope covers before the manifest disappears.
        secrets = [s.path for s in self.reencryptor.affected(scope, ctx)]
        path = manifest.path(scope)
        try:
            self.storage.remove_file(path)
            self.storage.record_change(
                [path], ctx.describe(f"Removed recipients of {scope}"))
        except OSError as error:
            raise ManifestWriteFailed(f"Could not remove {path}: {error}") from error

        return self.reencryptor.reencrypt(inherited, old, new, ctx, paths=secrets)
