import posixpath

import attr

from .utils import GringottsException, normalise

SUFFIXES = ('.gpg', '.asc')


def is_secret(name: str) -> bool:
    return posixpath.splitext(name)[1] in SUFFIXES


@attr.s(frozen=True, order=True)
class Secret:
    path: str = attr.ib(converter=normalise)

    def __attrs_post_init__(self):
        if not is_secret(self.path):
            raise GringottsException(
                f"I don't know how to decrypt {self.path}")

    def __str__(self):
        return self.path

    @property
    def armour(self) -> bool:
        return self.path.endswith('.asc')
