"""
Gringotts manages who can decrypt the GPG encrypted secrets in a store.

Every directory in a store can contain a '.gpg-id' file listing the GPG
recipients of the secrets beneath it. The nearest '.gpg-id' file above a
secret decides its recipients; lists in higher directories are not merged in.
When the recipients of a directory change, each secret it covers is decrypted
and encrypted again for the new recipients.

Show the recipients of a secret:

\b
    $ gringotts ls "team/database.gpg"

Give someone access to everything in the store:

\b
    $ gringotts add "jane@example.invalid"

Restrict a directory to a different set of recipients:

\b
    $ gringotts add --scope "ops" "john@example.invalid"

Retry secrets that could not be re-encrypted:

\b
    $ gringotts reencrypt --scope "ops"
"""

__author__ = 'Sam Clements'
__version__ = '1.0.0'
