import pathlib
import posixpath
import typing

import click
import git


def find_git_directory() -> typing.Optional[pathlib.Path]:
    try:
        repo = git.Repo(search_parent_directories=True)
    except git.exc.InvalidGitRepositoryError:
        return None
    return pathlib.Path(repo.working_dir)


def is_git_directory(directory: pathlib.Path) -> bool:
    try:
        git.Repo(directory, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        return False
    return True


def normalise(path: str) -> str:
    """
    Clean a store-relative path, returning '' for the root of the store.

    Paths may not be absolute or escape the store with '..'.
    """
    path = path.strip().replace('\\', '/')
    if path.startswith('/'):
        raise GringottsException(f"Store paths must be relative: {path}")
    parts = [part for part in path.split('/') if part not in ('', '.')]
    if '..' in parts:
        raise GringottsException(f"Store paths can't contain '..': {path}")
    return '/'.join(parts)


def parents(path: str) -> typing.Tuple[str, ...]:
    """A path followed by each of its ancestors, ending with the root ''."""
    path = normalise(path)
    candidates = [path]
    while path:
        path = posixpath.dirname(path)
        candidates.append(path)
    return tuple(candidates)


class GringottsException(click.ClickException):
    pass


class Cancelled(GringottsException):
    pass


class ManifestReadFailed(GringottsException):
    pass


class ManifestWriteFailed(GringottsException):
    pass


class ManifestAlreadyExists(GringottsException):
    pass


class WouldRemoveLastRootRecipient(GringottsException):
    pass


class RecipientInvalid(GringottsException):
    pass


class DecryptionFailed(GringottsException):
    pass


class EncryptionFailed(GringottsException):
    pass


class ReencryptionPartialFailure(GringottsException):
    def __init__(self, report) -> None:
        self.report = report
        lines = [f"Re-encryption of {report.scope or 'the store root'} "
                 f"did not complete"]
        for path in report.succeeded:
            lines.append(f"  re-encrypted: {path}")
        for path, error in sorted(report.failed.items()):
            lines.append(f"  failed: {path}: {error}")
        for path in report.skipped:
            lines.append(f"  not processed: {path}")
        retry = f" --scope {report.scope}" if report.scope else ''
        lines.append(f"Run 'gringotts reencrypt{retry}' to finish re-encrypting")
        super().__init__('\n'.join(lines))
