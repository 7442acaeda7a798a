import attr
import pytest

from gringotts.context import Context
from gringotts.store import Store
from gringotts.utils import (
    DecryptionFailed, EncryptionFailed, ReencryptionPartialFailure)

from fakes import RECIPIENTS, FakeCrypto, RecordingStorage, recipients_of


@attr.s
class CancellingCrypto(FakeCrypto):
    """Cancels the context after decrypting the first secret."""

    ctx: Context = attr.ib(factory=Context)

    def decrypt(self, ciphertext):
        plaintext = super().decrypt(ciphertext)
        self.ctx.cancel()
        return plaintext


@attr.s(frozen=True)
class CancellingStorage(RecordingStorage):
    """Cancels the context once the first change has been recorded."""

    ctx: Context = attr.ib(factory=Context)

    def record_change(self, paths, description):
        super().record_change(paths, description)
        self.ctx.cancel()


def test_removed_recipient_can_not_decrypt(store, populated, tmp_path):
    store.remove_recipient('0xFEEDBEEF')

    ciphertext = (tmp_path / 'baz.gpg').read_bytes()
    assert recipients_of(ciphertext) == ['0xDEADBEEF']
    assert FakeCrypto(keys={'0xDEADBEEF'}).decrypt(ciphertext) == b'secret\n'
    with pytest.raises(DecryptionFailed):
        FakeCrypto(keys={'0xFEEDBEEF'}).decrypt(ciphertext)


def test_plaintext_is_unchanged(store, crypto, write, tmp_path, populated):
    write('note.gpg', RECIPIENTS, text='line one\nline two\n')
    store.add_recipient('A3683834')
    assert crypto.decrypt((tmp_path / 'note.gpg').read_bytes()) == b'line one\nline two\n'


def test_armour_is_kept(store, populated, tmp_path):
    store.add_recipient('A3683834')
    assert (tmp_path / 'foo/qux.asc').read_bytes().startswith(b'armour:')
    assert (tmp_path / 'baz.gpg').read_bytes().startswith(b'binary:')


def test_failures_are_isolated(store, storage, populated, tmp_path):
    (tmp_path / 'foo/broken.gpg').write_bytes(b'not encrypted')

    report = store.mutator.add('', 'A3683834', Context())
    assert not report.ok
    assert set(report.failed) == {'foo/broken.gpg'}
    assert isinstance(report.failed['foo/broken.gpg'], DecryptionFailed)
    assert report.succeeded == ['baz.gpg', 'foo/bar/baz.gpg', 'foo/qux.asc']
    assert (tmp_path / 'foo/broken.gpg').read_bytes() == b'not encrypted'
    assert storage.changes[-1][0] == ('baz.gpg', 'foo/bar/baz.gpg', 'foo/qux.asc')


def test_undecryptable_secret(store, populated, write, tmp_path):
    secret = write('other.gpg', ['0xSOMEONE'])
    before = secret.read_bytes()
    with pytest.raises(ReencryptionPartialFailure) as error:
        store.add_recipient('A3683834')
    assert error.value.report.failed.keys() == {'other.gpg'}
    assert 'failed: other.gpg' in error.value.format_message()
    assert 're-encrypted: baz.gpg' in error.value.format_message()
    assert secret.read_bytes() == before


def test_encryption_failure(store, crypto, populated, tmp_path):
    before = (tmp_path / 'baz.gpg').read_bytes()
    crypto.refuse.add('0xNOKEY')
    report = store.mutator.add('', '0xNOKEY', Context())
    assert len(report.failed) == 3
    assert all(isinstance(e, EncryptionFailed) for e in report.failed.values())
    assert (tmp_path / 'baz.gpg').read_bytes() == before


def test_deeper_scopes_are_untouched(store, populated, write, tmp_path):
    write('foo/bar/.gpg-id', ['A3683834'])
    secret = write('foo/bar/baz.gpg', ['A3683834'])
    before = secret.read_bytes()

    report = store.remove_recipient('0xFEEDBEEF')
    assert report.succeeded == ['baz.gpg', 'foo/qux.asc']
    assert secret.read_bytes() == before


def test_unchanged_recipients(store, crypto, populated):
    report = store.reencryptor.reencrypt('', RECIPIENTS, RECIPIENTS, Context())
    assert report.ok and not report.succeeded
    assert crypto.decrypted == []


def test_cancelled_before_start(store, storage, populated, tmp_path):
    ctx = Context()
    ctx.cancel()
    report = store.reencryptor.reencrypt('', RECIPIENTS, ['0xDEADBEEF'], ctx)
    assert report.succeeded == []
    assert report.skipped == ['baz.gpg', 'foo/bar/baz.gpg', 'foo/qux.asc']
    assert storage.changes == []
    assert recipients_of((tmp_path / 'baz.gpg').read_bytes()) == RECIPIENTS


def test_cancelled_part_way(tmp_path, storage, populated):
    crypto = CancellingCrypto()
    store = Store(alias='', path=tmp_path, crypto=crypto, storage=storage)
    report = store.reencryptor.reencrypt('', RECIPIENTS, ['0xDEADBEEF'], crypto.ctx)

    assert report.succeeded == ['baz.gpg']
    assert report.skipped == ['foo/bar/baz.gpg', 'foo/qux.asc']
    assert recipients_of((tmp_path / 'baz.gpg').read_bytes()) == ['0xDEADBEEF']
    assert recipients_of((tmp_path / 'foo/qux.asc').read_bytes()) == RECIPIENTS
    assert storage.changes == [(('baz.gpg',), "Re-encrypted 1 secrets in the store root")]


def test_retry(store, crypto, populated, tmp_path):
    crypto.refuse.add('A3683834')
    with pytest.raises(ReencryptionPartialFailure):
        store.add_recipient('A3683834')
    assert recipients_of((tmp_path / 'baz.gpg').read_bytes()) == RECIPIENTS

    crypto.refuse.clear()
    report = store.reencrypt('', paths=['baz.gpg'])
    assert report.succeeded == ['baz.gpg']
    assert recipients_of((tmp_path / 'baz.gpg').read_bytes()) == [*RECIPIENTS, 'A3683834']

    # Running again over the whole store is safe.
    assert len(store.reencrypt().succeeded) == 3
    assert recipients_of((tmp_path / 'baz.gpg').read_bytes()) == [*RECIPIENTS, 'A3683834']


def test_reencrypt_inherited_scope(store, populated, tmp_path):
    report = store.reencrypt('foo')
    assert report.succeeded == ['foo/bar/baz.gpg', 'foo/qux.asc']


def test_cancelled_after_manifest_is_recorded(tmp_path, crypto, populated):
    storage = CancellingStorage(tmp_path)
    store = Store(alias='', path=tmp_path, crypto=crypto, storage=storage)
    with pytest.raises(ReencryptionPartialFailure) as error:
        store.remove_recipient('0xFEEDBEEF', storage.ctx)

    report = error.value.report
    assert report.succeeded == []
    assert report.skipped == ['baz.gpg', 'foo/bar/baz.gpg', 'foo/qux.asc']
    assert 'not processed: foo/qux.asc' in error.value.format_message()
    assert store.recipients() == ['0xDEADBEEF']
    assert recipients_of((tmp_path / 'baz.gpg').read_bytes()) == RECIPIENTS
    assert storage.changes == [(('.gpg-id',), "Removed Recipient 0xFEEDBEEF")]


def test_reencrypt_empty_scope(store, populated, write, tmp_path):
    write('foo/.gpg-id', [])
    before = (tmp_path / 'foo/qux.asc').read_bytes()

    with pytest.raises(ReencryptionPartialFailure) as error:
        store.reencrypt('foo')
    report = error.value.report
    assert set(report.failed) == {'foo/bar/baz.gpg', 'foo/qux.asc'}
    assert all(isinstance(e, EncryptionFailed) for e in report.failed.values())
    assert (tmp_path / 'foo/qux.asc').read_bytes() == before


def test_failure_message_explains_retry(store, crypto, populated, write):
    write('foo/.gpg-id', RECIPIENTS)
    crypto.refuse.add('A3683834')

    with pytest.raises(ReencryptionPartialFailure) as error:
        store.add_recipient('A3683834', scope='foo')
    assert "Run 'gringotts reencrypt --scope foo'" in error.value.format_message()

    with pytest.raises(ReencryptionPartialFailure) as error:
        store.add_recipient('A3683834')
    assert "Run 'gringotts reencrypt' to finish" in error.value.format_message()
