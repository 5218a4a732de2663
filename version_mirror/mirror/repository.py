"""Mirror repository backed by a local git working tree."""

import os
import shutil
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Self

import structlog

from version_mirror.mirror.abc import MirrorRepositoryBase
from version_mirror.mirror.exceptions import MirrorStateError, PublishConflictError, TagAlreadyExistsError
from version_mirror.utils.constants import GITHUB_ACTIONS_BOT_EMAIL, GITHUB_ACTIONS_BOT_NAME
from version_mirror.utils.git import GitCommandError, run_git

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

GIT_DIR = ".git"

# Fragments git prints when a push is refused because the remote moved on.
PUSH_REJECTION_MARKERS = ("[rejected]", "[remote rejected]", "non-fast-forward", "fetch first")


def is_preserved(relative_path: str, preserved_paths: Iterable[str]) -> bool:
    """Whether relative_path is a preserved path or lies inside one."""
    return any(relative_path == preserved or relative_path.startswith(preserved + "/") for preserved in preserved_paths)


def is_ancestor_of_preserved(relative_path: str, preserved_paths: Iterable[str]) -> bool:
    """Whether relative_path is a directory that contains a preserved path."""
    return any(preserved.startswith(relative_path + "/") for preserved in preserved_paths)


def iter_tree_files(top: Path) -> Iterator[Path]:
    """Yield every file and symlink below top, skipping git metadata directories."""
    for dirpath, dirnames, filenames in os.walk(top):
        current = Path(dirpath)
        for dirname in list(dirnames):
            if dirname == GIT_DIR:
                dirnames.remove(dirname)
            elif (current / dirname).is_symlink():
                # os.walk lists directory symlinks as directories; treat them as entries.
                dirnames.remove(dirname)
                yield current / dirname
        for filename in filenames:
            yield current / filename


class GitMirrorRepository(MirrorRepositoryBase):
    """A mirror working tree driven through the git command line."""

    def __init__(
        self,
        root: Path,
        marker_path: str,
        branch: str = "main",
        remote: str = "origin",
        committer_name: str = GITHUB_ACTIONS_BOT_NAME,
        committer_email: str = GITHUB_ACTIONS_BOT_EMAIL,
        timeout: float | None = None,
    ) -> None:
        """Initialize the repository wrapper.

        Args:
            root: Root of the mirror working tree.
            marker_path: Path of the version marker relative to root.
            branch: Branch the mirror publishes to.
            remote: Name of the remote to publish to.
            committer_name: Identity used for sync commits.
            committer_email: Identity used for sync commits.
            timeout: Seconds allowed for each network-bound git command.
        """
        self.root = root
        self.marker_path = marker_path
        self.branch = branch
        self.remote = remote
        self.committer_name = committer_name
        self.committer_email = committer_email
        self.timeout = timeout

    @classmethod
    def initialize(cls, root: Path, marker_path: str, branch: str = "main", **kwargs: object) -> Self:
        """Create a new, empty git repository at root on the given branch."""
        if (root / GIT_DIR).exists():
            raise MirrorStateError(f"A git repository already exists at {root.absolute()}")
        root.mkdir(parents=True, exist_ok=True)
        run_git(["init"], cwd=root)
        run_git(["symbolic-ref", "HEAD", f"refs/heads/{branch}"], cwd=root)
        logger.info("Initialized mirror repository", root=str(root), branch=branch)
        return cls(root, marker_path, branch=branch, **kwargs)  # type: ignore[arg-type]

    def _git(self, args: list[str], timeout: float | None = None, check: bool = True) -> str:
        return run_git(args, cwd=self.root, timeout=timeout, check=check).stdout

    def _identity_args(self) -> list[str]:
        return ["-c", f"user.name={self.committer_name}", "-c", f"user.email={self.committer_email}"]

    def ensure_repository(self) -> None:
        """Raise MirrorStateError unless root is a git working tree."""
        if not (self.root / GIT_DIR).exists():
            raise MirrorStateError(f"Mirror path is not a git repository: {self.root.absolute()}")

    def add_remote(self, url: str) -> None:
        """Register the publish remote."""
        self._git(["remote", "add", self.remote, url])
        logger.info("Added mirror remote", remote=self.remote)

    # Version marker
    def read_marker(self) -> str:
        """Return the persisted version marker."""
        marker_file = self.root / self.marker_path
        if not marker_file.is_file():
            raise MirrorStateError(f"Version marker not found at {marker_file}; provision the mirror first")
        version = marker_file.read_text(encoding="utf-8").strip()
        if not version:
            raise MirrorStateError(f"Version marker at {marker_file} is empty")
        return version

    def write_marker(self, version: str) -> None:
        """Overwrite the version marker in the working tree."""
        marker_file = self.root / self.marker_path
        marker_file.parent.mkdir(parents=True, exist_ok=True)
        marker_file.write_text(f"{version}\n", encoding="utf-8")

    # Content
    def replace_content(self, snapshot: Path, preserved_paths: Iterable[str]) -> None:
        """Make the working tree match snapshot everywhere outside preserved_paths.

        Local paths absent from the snapshot are deleted and snapshot paths are
        copied over. Preserved paths are never read from the snapshot nor
        written locally, so they keep exactly the content they had before.
        """
        preserved = [path.strip("/") for path in preserved_paths]
        for path in preserved:
            local = self.root / path
            if not local.exists() and not local.is_symlink():
                logger.warning("Preserved path missing from mirror, leaving it absent", path=path)

        removed = 0
        for local_file in list(iter_tree_files(self.root)):
            relative = local_file.relative_to(self.root).as_posix()
            if is_preserved(relative, preserved):
                continue
            snapshot_file = snapshot / relative
            if snapshot_file.is_symlink() or snapshot_file.is_file():
                continue
            local_file.unlink()
            removed += 1

        copied = 0
        skipped = 0
        for snapshot_file in iter_tree_files(snapshot):
            relative = snapshot_file.relative_to(snapshot).as_posix()
            if is_preserved(relative, preserved):
                skipped += 1
                continue
            if is_ancestor_of_preserved(relative, preserved):
                logger.warning("Upstream file collides with a preserved directory, skipping", path=relative)
                skipped += 1
                continue
            destination = self.root / relative
            self._prepare_destination(destination)
            if snapshot_file.is_symlink():
                os.symlink(os.readlink(snapshot_file), destination)
            else:
                shutil.copy2(snapshot_file, destination)
            copied += 1

        self._prune_empty_directories(preserved)
        logger.info("Replaced mirror content", copied=copied, removed=removed, skipped_preserved=skipped)

    def _prepare_destination(self, destination: Path) -> None:
        # Clear files sitting where the snapshot needs a directory, then whatever occupies the target.
        for parent in reversed(destination.relative_to(self.root).parents):
            candidate = self.root / parent
            if candidate != self.root and (candidate.is_symlink() or candidate.is_file()):
                candidate.unlink()
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.is_symlink() or destination.is_file():
            destination.unlink()
        elif destination.is_dir():
            shutil.rmtree(destination)

    def _prune_empty_directories(self, preserved: list[str]) -> None:
        for dirpath, dirnames, _ in os.walk(self.root, topdown=False):
            current = Path(dirpath)
            if current == self.root:
                continue
            relative = current.relative_to(self.root).as_posix()
            if relative == GIT_DIR or relative.startswith(GIT_DIR + "/") or is_preserved(relative, preserved):
                continue
            if not any(current.iterdir()):
                current.rmdir()

    def discard_changes(self) -> None:
        """Drop every uncommitted change in the working tree."""
        logger.warning("Discarding uncommitted changes in mirror", root=str(self.root))
        self._git(["reset", "--hard", "HEAD"])
        self._git(["clean", "-ffdx"])

    def head_sha(self) -> str:
        """Return the SHA of the current commit."""
        return self._git(["rev-parse", "HEAD"]).strip()

    def reset_to(self, sha: str) -> None:
        """Move the branch and working tree back to commit sha."""
        logger.warning("Resetting mirror to an earlier commit", root=str(self.root), sha=sha)
        self._git(["reset", "--hard", sha])
        self._git(["clean", "-ffdx"])

    # Commit / tag / publish
    def stage_all(self) -> None:
        """Stage every change in the working tree, including paths matched by .gitignore."""
        # Upstream content may track files its own .gitignore matches.
        self._git(["add", "--all", "--force"])

    def has_staged_changes(self, exclude: Iterable[str] = ()) -> bool:
        """Whether the index differs from the last commit, ignoring the excluded paths."""
        pathspecs = ["."] + [f":(exclude,literal){path.strip('/')}" for path in exclude]
        result = run_git(["diff", "--cached", "--quiet", "--", *pathspecs], cwd=self.root, check=False)
        if result.returncode not in (0, 1):
            raise GitCommandError(["git", "diff", "--cached", "--quiet"], result.returncode, result.stderr)
        return result.returncode == 1

    def commit(self, message: str) -> str:
        """Commit the index and return the new commit SHA."""
        self._git([*self._identity_args(), "commit", "--no-verify", "-m", message])
        sha = self.head_sha()
        logger.info("Created commit", sha=sha, message=message)
        return sha

    def tag(self, name: str) -> None:
        """Create a lightweight tag on the current commit."""
        exists = run_git(["rev-parse", "--quiet", "--verify", f"refs/tags/{name}"], cwd=self.root, check=False)
        if exists.returncode == 0:
            raise TagAlreadyExistsError(name)
        self._git(["tag", name])
        logger.info("Created tag", tag=name)

    def delete_tag(self, name: str) -> None:
        """Delete a local tag."""
        self._git(["tag", "--delete", name])
        logger.info("Deleted tag", tag=name)

    def publish(self, tag: str | None = None) -> None:
        """Push the branch, then the tag if given."""
        branch_ref = f"refs/heads/{self.branch}"
        self._push(f"HEAD:{branch_ref}", branch_ref)
        logger.info("Published branch", remote=self.remote, branch=self.branch)
        if tag is not None:
            self.publish_tag(tag)

    def publish_tag(self, tag: str) -> None:
        """Push a single tag. Raises TagAlreadyExistsError if the remote already has it."""
        tag_ref = f"refs/tags/{tag}"
        try:
            self._push(tag_ref, tag_ref)
        except PublishConflictError as exc:
            if "already exists" in exc.detail:
                raise TagAlreadyExistsError(tag) from exc
            raise
        logger.info("Published tag", remote=self.remote, tag=tag)

    def _push(self, refspec: str, ref: str) -> None:
        try:
            self._git(["push", self.remote, refspec], timeout=self.timeout)
        except GitCommandError as exc:
            if not exc.timed_out and any(marker in exc.stderr for marker in PUSH_REJECTION_MARKERS):
                logger.error("Push rejected by remote", remote=self.remote, ref=ref, stderr=exc.stderr.strip())
                raise PublishConflictError(self.remote, ref, exc.stderr) from exc
            raise
