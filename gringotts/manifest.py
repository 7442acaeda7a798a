"""
Read and write recipient manifests.

A manifest lists one recipient per line. Blank lines and lines starting with
'#' are ignored, and repeated recipients only count the first time.
"""

import posixpath
import typing

MANIFEST_NAME = '.gpg-id'


def path(scope: str) -> str:
    """The store-relative path of the manifest for a scope."""
    return posixpath.join(scope, MANIFEST_NAME) if scope else MANIFEST_NAME


def dedup(ids: typing.Iterable[str]) -> typing.List[str]:
    seen: typing.Set[str] = set()
    result: typing.List[str] = []
    for recipient in ids:
        if recipient not in seen:
            seen.add(recipient)
            result.append(recipient)
    return result


def decode(data: bytes) -> typing.List[str]:
    lines = (line.strip() for line in data.decode('utf-8', 'replace').splitlines())
    return dedup(line for line in lines if line and not line.startswith('#'))


def encode(ids: typing.Iterable[str]) -> bytes:
    recipients = dedup(r.strip() for r in ids if r.strip())
    return ''.join(f'{recipient}\n' for recipient in recipients).encode('utf-8')
