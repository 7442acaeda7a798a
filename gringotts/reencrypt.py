import logging
import typing

import attr

from .context import Context
from .gpg import Crypto
from .resolver import Resolver
from .secrets import Secret
from .storage import Storage
from .utils import (
    Cancelled, EncryptionFailed, GringottsException, ManifestWriteFailed,
    ReencryptionPartialFailure, normalise)

log = logging.getLogger(__name__)


@attr.s(kw_only=True)
class ReencryptReport:
    """What happened to each secret during one re-encryption."""

    scope: str = attr.ib(default='')
    succeeded: typing.List[str] = attr.ib(factory=list)
    failed: typing.Dict[str, Exception] = attr.ib(factory=dict)
    skipped: typing.List[str] = attr.ib(factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped

    def raise_for_failures(self) -> 'ReencryptReport':
        if not self.ok:
            raise ReencryptionPartialFailure(self)
        return self


@attr.s(frozen=True)
class Reencryptor:
    storage: Storage = attr.ib()
    crypto: Crypto = attr.ib()
    resolver: Resolver = attr.ib()

    def affected(self, scope: str, ctx: Context) -> typing.List[Secret]:
        """Secrets under a scope that are not covered by a deeper manifest."""
        scope = normalise(scope)
        secrets = self.resolver.incantation.secrets(self.storage, scope, ctx)
        return [s for s in secrets if self.resolver.find(s.path, ctx) == scope]

    def reencrypt(
            self,
            scope: str,
            old: typing.Sequence[str],
            new: typing.Sequence[str],
            ctx: Context,
            paths: typing.Optional[typing.Iterable[str]] = None) -> ReencryptReport:
        """
        Re-encrypt the secrets governed by a scope's manifest for new recipients.

        Each secret is either replaced by new ciphertext or left untouched. A
        failure is recorded against that secret and the rest carry on. Secrets
        that succeeded are recorded as one change, even if others failed.
        """
        scope = normalise(scope)
        report = ReencryptReport(scope=scope)
        if new and list(old) == list(new) and paths is None:
            log.debug(f"Recipients of '{scope}' are unchanged")
            return report

        # The manifest may already be recorded, so the search isn't cancelled
        # and every secret it finds is accounted for in the report.
        secrets = self.affected(scope, Context())
        if paths is not None:
            wanted = {normalise(p) for p in paths}
            secrets = [s for s in secrets if s.path in wanted]

        log.info(f"Re-encrypting {len(secrets)} secrets in '{scope}' "
                 f"for {len(new)} recipients")
        for index, secret in enumerate(secrets):
            try:
                ctx.check()
            except Cancelled as error:
                log.warning(f"Stopped re-encrypting '{scope}': {error}")
                report.skipped.extend(s.path for s in secrets[index:])
                break

            try:
                self.secret(secret, new)
            except (GringottsException, OSError) as error:
                log.error(f"Failed to re-encrypt {secret}: {error}")
                report.failed[secret.path] = error
            else:
                report.succeeded.append(secret.path)

        description = ctx.describe(
            f"Re-encrypted {len(report.succeeded)} secrets in {scope or 'the store root'}")
        try:
            self.storage.record_change(report.succeeded, description)
        except OSError as error:
            raise ManifestWriteFailed(
                f"Could not record re-encrypted secrets: {error}") from error
        log.info(f"Re-encrypted {len(report.succeeded)} of {len(secrets)} "
                 f"secrets in '{scope}'")
        return report

    def secret(self, secret: Secret, recipients: typing.Sequence[str]) -> None:
        if not recipients:
            raise EncryptionFailed(f"No recipients to encrypt {secret} for")

        log.debug(f"Re-encrypting {secret} for {', '.join(recipients)}")
        ciphertext = self.storage.read_file(secret.path)
        plaintext = self.crypto.decrypt(ciphertext)
        replacement = self.crypto.encrypt(plaintext, recipients, armour=secret.armour)
        self.storage.write_file(secret.path, replacement)
