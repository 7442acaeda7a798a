import typing

import attr

from gringotts.gpg import Crypto
from gringotts.storage import FileStorage
from gringotts.utils import DecryptionFailed, EncryptionFailed, RecipientInvalid

RECIPIENTS = ['0xDEADBEEF', '0xFEEDBEEF']


@attr.s
class FakeCrypto(Crypto):
    """
    Pretend encryption that writes the recipients into a header line.

    Decryption only works if one of the recipients is in `keys`.
    """

    keys: typing.Set[str] = attr.ib(factory=lambda: {*RECIPIENTS, 'A3683834'})
    known: typing.Set[str] = attr.ib(factory=lambda: {*RECIPIENTS, 'A3683834'})
    invalid: typing.Set[str] = attr.ib(factory=set)
    refuse: typing.Set[str] = attr.ib(factory=set)
    decrypted: typing.List[bytes] = attr.ib(factory=list)

    def encrypt(self, plaintext, recipients, armour=False):
        for recipient in recipients:
            if recipient in self.refuse:
                raise EncryptionFailed(f"No public key for {recipient}")
        header = f"{'armour' if armour else 'binary'}:{','.join(recipients)}\n"
        return header.encode('utf-8') + plaintext

    def decrypt(self, ciphertext):
        header, _, plaintext = ciphertext.partition(b'\n')
        if b':' not in header:
            raise DecryptionFailed("Not an encrypted message")
        if not set(recipients_of(ciphertext)) & self.keys:
            raise DecryptionFailed("No secret key")
        self.decrypted.append(ciphertext)
        return plaintext

    def is_recognized_recipient(self, recipient):
        if recipient in self.invalid:
            raise RecipientInvalid(f"Recipient {recipient} is revoked")
        return recipient in self.known


def recipients_of(ciphertext: bytes) -> typing.List[str]:
    header = ciphertext.partition(b'\n')[0].decode('utf-8')
    return header.partition(':')[2].split(',')


@attr.s(frozen=True)
class RecordingStorage(FileStorage):
    changes: typing.List[typing.Tuple[typing.Tuple[str, ...], str]] = attr.ib(factory=list)

    def record_change(self, paths, description):
        super().record_change(paths, description)
        if paths:
            self.changes.append((tuple(paths), description))
