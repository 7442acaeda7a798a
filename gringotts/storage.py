"""
Storage backends for the files in a store.

Paths given to a storage backend are relative to the root of the store and
always use '/' as a separator.
"""

import logging
import os
import pathlib
import tempfile
import typing

import attr
import git

log = logging.getLogger(__name__)


@attr.s(frozen=True)
class Entry:
    name: str = attr.ib()
    directory: bool = attr.ib(default=False)


class Storage:
    def write_file(self, path: str, data: bytes) -> None:
        raise NotImplementedError

    def read_file(self, path: str) -> bytes:
        """Raises FileNotFoundError if there is no file at the path."""
        raise NotImplementedError

    def remove_file(self, path: str) -> None:
        raise NotImplementedError

    def list_directory(self, path: str) -> typing.Tuple[Entry, ...]:
        raise NotImplementedError

    def record_change(
            self,
            paths: typing.Sequence[str],
            description: str) -> None:
        """Record changes to one or more files as one entry in the history."""
        raise NotImplementedError


@attr.s(frozen=True)
class FileStorage(Storage):
    root: pathlib.Path = attr.ib(converter=pathlib.Path)
    mode: int = attr.ib(default=0o600)

    def full(self, path: str) -> pathlib.Path:
        return self.root / path if path else self.root

    def write_file(self, path: str, data: bytes) -> None:
        target = self.full(path)
        log.debug(f"Writing {len(data)} bytes to {target}")
        target.parent.mkdir(parents=True, exist_ok=True)

        # Replace the file in one step so readers never see a partial write.
        fd, temporary = tempfile.mkstemp(
            dir=target.parent, prefix=f'.{target.name}.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.chmod(temporary, self.mode)
            os.replace(temporary, target)
        except BaseException:
            os.unlink(temporary)
            raise

    def read_file(self, path: str) -> bytes:
        log.debug(f"Reading {self.full(path)}")
        try:
            return self.full(path).read_bytes()
        except NotADirectoryError as error:
            raise FileNotFoundError(error.errno, error.strerror, error.filename) from error

    def remove_file(self, path: str) -> None:
        log.debug(f"Removing {self.full(path)}")
        self.full(path).unlink()

    def list_directory(self, path: str) -> typing.Tuple[Entry, ...]:
        directory = self.full(path)
        if not directory.is_dir():
            return ()
        return tuple(sorted(
            (Entry(name=p.name, directory=p.is_dir()) for p in directory.iterdir()),
            key=lambda e: e.name))

    def record_change(
            self,
            paths: typing.Sequence[str],
            description: str) -> None:
        if paths:
            log.info(f"Changed {len(paths)} files: {description.splitlines()[0]}")


@attr.s(frozen=True)
class GitStorage(FileStorage):
    """Files in a git work tree, committing each recorded change."""

    @property
    def repo(self) -> git.Repo:
        return git.Repo(self.root, search_parent_directories=True)

    def record_change(
            self,
            paths: typing.Sequence[str],
            description: str) -> None:
        if not paths:
            return

        repo = self.repo
        prefix = pathlib.Path(os.path.relpath(self.root, repo.working_dir))
        changed = [(prefix / path).as_posix() for path in paths]
        existing = [p for p in changed if (pathlib.Path(repo.working_dir) / p).exists()]
        removed = [p for p in changed if p not in existing]

        index = repo.index
        try:
            if existing:
                index.add(existing)
            if removed:
                index.remove(removed, working_tree=False)
            commit = index.commit(description)
        except git.exc.GitError as error:
            raise OSError(f"Could not commit {', '.join(changed)}: {error}") from error
        log.info(f"Committed {len(changed)} files as {commit.hexsha[:8]}: "
                 f"{description.splitlines()[0]}")
