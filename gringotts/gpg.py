import logging
import os
import pathlib
import subprocess
import typing

import attr

from .utils import DecryptionFailed, EncryptionFailed, RecipientInvalid

log = logging.getLogger(__name__)

# Validity values from `gpg --with-colons` that can never become usable.
UNUSABLE = {'r': 'revoked', 'e': 'expired', 'i': 'invalid', 'd': 'disabled'}


class Crypto:
    """Encryption capability used to re-encrypt secrets."""

    def encrypt(
            self,
            plaintext: bytes,
            recipients: typing.Sequence[str],
            armour: bool = False) -> bytes:
        raise NotImplementedError

    def decrypt(self, ciphertext: bytes) -> bytes:
        raise NotImplementedError

    def is_recognized_recipient(self, recipient: str) -> bool:
        """
        Check a recipient is a known encryption target.

        False only means the recipient could not be verified. Raises
        RecipientInvalid if the recipient can definitely not be used.
        """
        raise NotImplementedError


@attr.s(frozen=True)
class GPG(Crypto):
    verbose: bool = attr.ib(default=False)
    home: typing.Optional[pathlib.Path] = attr.ib(default=None)
    always_trust: bool = attr.ib(default=False)
    timeout: typing.Optional[float] = attr.ib(default=None)

    def command(
            self,
            arguments: typing.Sequence[str],
            armour: bool = False) -> typing.Tuple[str, ...]:
        command: typing.Tuple[str, ...] = ('gpg', '--batch', '--yes')
        if armour:
            command = (*command, '--armour')
        if self.verbose:
            command = (*command, '--verbose')
        if self.always_trust:
            command = (*command, '--trust-model', 'always')
        return (*command, *arguments)

    def run(self,
            arguments: typing.Sequence[str],
            armour: bool = False,
            stdin: typing.Optional[bytes] = None,
            quiet: bool = False) -> subprocess.CompletedProcess:
        env = {**os.environ, 'GNUPGHOME': self.home.as_posix()} if self.home else None
        try:
            return subprocess.run(
                self.command(arguments, armour),
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
                timeout=self.timeout,
                check=True)
        except subprocess.CalledProcessError as error:
            for line in error.stderr.decode('utf-8', 'replace').splitlines():
                log.log(logging.DEBUG if quiet else logging.ERROR, line)
            raise

    def encrypt(
            self,
            plaintext: bytes,
            recipients: typing.Sequence[str],
            armour: bool = False) -> bytes:
        log.debug(f"Encrypting {len(plaintext)} bytes for {', '.join(recipients)}")
        args: typing.List[str] = []
        for recipient in recipients:
            args += ['--recipient', recipient]
        args += ['--output', '-', '--encrypt']
        try:
            return self.run(args, armour=armour, stdin=plaintext).stdout
        except (subprocess.SubprocessError, OSError) as error:
            raise EncryptionFailed(f"gpg could not encrypt: {error}") from error

    def decrypt(self, ciphertext: bytes) -> bytes:
        log.debug(f"Decrypting {len(ciphertext)} bytes")
        try:
            return self.run(['--output', '-', '--decrypt'], stdin=ciphertext).stdout
        except (subprocess.SubprocessError, OSError) as error:
            raise DecryptionFailed(f"gpg could not decrypt: {error}") from error

    def is_recognized_recipient(self, recipient: str) -> bool:
        try:
            result = self.run(['--with-colons', '--list-keys', recipient], quiet=True)
        except (subprocess.SubprocessError, OSError):
            log.debug(f"gpg could not find a public key for {recipient}")
            return False
        return self.usable(recipient, result.stdout.decode('utf-8', 'replace'))

    @staticmethod
    def usable(recipient: str, listing: str) -> bool:
        """
        Check the output of `gpg --with-colons --list-keys` has a public key
        that can encrypt.
        """
        keys = [line.split(':') for line in listing.splitlines()
                if line.startswith('pub:')]
        if not keys:
            return False

        for fields in keys:
            validity = fields[1] if len(fields) > 1 else ''
            capabilities = fields[11] if len(fields) > 11 else ''
            if validity not in UNUSABLE and 'E' in capabilities:
                return True

        reasons = sorted({UNUSABLE.get(fields[1], 'not usable for encryption')
                          for fields in keys if len(fields) > 1})
        raise RecipientInvalid(
            f"Recipient {recipient} can't be encrypted to: {', '.join(reasons)}")
