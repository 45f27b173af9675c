"""Versioned store backed by a git repository.

Each note is one JSON file under ``<repo>/notes``; each recorded change is
one commit. All operations go through the git CLI via subprocess so the
store works with whatever git the user has installed, and so the history
stays readable with plain ``git log``.
"""

import logging
import os
import subprocess
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from zettelvc.exceptions import ErrorCode, StorageError
from zettelvc.models.schema import validate_safe_path_component
from zettelvc.storage.base import ChangeEntry, StoredRecord
from zettelvc.utils import sanitize_commit_message

logger = logging.getLogger(__name__)

# git log field separator (ASCII unit separator)
_SEP = "\x1f"
_LOG_FORMAT = f"--format=%H{_SEP}%ct{_SEP}%s"


class GitError(StorageError):
    """Raised when a git command fails.

    Attributes:
        command: The git command that failed (if applicable)
        returncode: Exit code from git (if applicable)
        stderr: Error output from git (if applicable)
    """

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
    ):
        super().__init__(message, operation="git", code=code)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        if returncode is not None:
            self.details["returncode"] = returncode
        if stderr:
            self.details["stderr"] = stderr[:200]

    def __str__(self) -> str:
        parts = [self.message]
        if self.command:
            parts.append(f"command: {' '.join(self.command)}")
        if self.returncode is not None:
            parts.append(f"returncode: {self.returncode}")
        if self.stderr:
            parts.append(f"stderr: {self.stderr[:200]}")
        return " | ".join(parts)


class GitStore:
    """VersionedStore implementation over the git CLI.

    Writes are staged with ``git add`` and remembered until the next
    :meth:`record_change`, which commits exactly those files. If the commit
    fails the staged files are put back the way they were.
    """

    NOTES_DIR = "notes"
    SUFFIX = ".json"

    def __init__(
        self,
        repo_path: Path,
        timeout: int = 30,
        author_name: str = "zettelvc",
        author_email: str = "zettelvc@localhost",
    ):
        """Initialize the store.

        Args:
            repo_path: Path to the repository root. Initialized as a fresh
                git repository if ``.git`` doesn't exist.
            timeout: Seconds before a single git command is abandoned.
            author_name: ``user.name`` configured on a fresh repository.
            author_email: ``user.email`` configured on a fresh repository.
        """
        self.repo_path = Path(repo_path).expanduser().resolve()
        self.notes_dir = self.repo_path / self.NOTES_DIR
        self._timeout = timeout
        self._author_name = author_name
        self._author_email = author_email
        # Staged files since the last recorded change -> previous bytes (None if new)
        self._pending: Dict[Path, Optional[bytes]] = {}
        self._ensure_git_repo()

    def _run_git(
        self,
        args: List[str],
        check: bool = True,
        retries: int = 3,
        retry_delay: float = 0.1,
    ) -> subprocess.CompletedProcess:
        """Run a git command via subprocess with retry for lock contention.

        Args:
            args: Git command arguments (without 'git' prefix)
            check: If True, raise GitError on non-zero exit
            retries: Number of retries for index.lock contention
            retry_delay: Base delay between retries (multiplied by attempt)

        Returns:
            CompletedProcess with command results

        Raises:
            GitError: If check=True and command fails after all retries
        """
        cmd = ["git", "-C", str(self.repo_path)] + args
        last_error = None

        for attempt in range(retries + 1):
            try:
                result = subprocess.run(
                    cmd,
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=self._timeout,
                )

                if result.returncode != 0 and result.stderr:
                    if "index.lock" in result.stderr and attempt < retries:
                        logger.debug(
                            f"Git index.lock contention, retry {attempt + 1}/{retries}: {args}"
                        )
                        time.sleep(retry_delay * (attempt + 1))
                        continue

                if check and result.returncode != 0:
                    raise GitError(
                        message=f"Git command failed: {' '.join(args)}",
                        command=cmd,
                        returncode=result.returncode,
                        stderr=result.stderr.strip() if result.stderr else None,
                    )

                return result

            except subprocess.TimeoutExpired as e:
                last_error = GitError(
                    message=f"Git command timed out: {' '.join(args)}", command=cmd
                )
                if attempt < retries:
                    time.sleep(retry_delay * (attempt + 1))
                    continue
                raise last_error from e
            except FileNotFoundError as e:
                raise GitError(
                    message="Git is not installed or not in PATH", command=cmd
                ) from e

        if last_error:
            raise last_error
        raise GitError(f"Git command failed after {retries} retries: {args}")

    def _ensure_git_repo(self) -> None:
        """Initialize the repository if .git doesn't exist."""
        git_dir = self.repo_path / ".git"

        if not git_dir.exists():
            logger.info(f"Initializing git repository at {self.repo_path}")
            try:
                self.repo_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(
                    "Cannot create repository directory",
                    operation="init",
                    path=str(self.repo_path),
                    code=ErrorCode.STORAGE_WRITE_FAILED,
                    original_error=e,
                ) from e
            self._run_git(["init"])
            self._run_git(["config", "user.email", self._author_email])
            self._run_git(["config", "user.name", self._author_name])
            logger.info("Git repository initialized")
        else:
            logger.debug(f"Git repository already exists at {self.repo_path}")

        self.notes_dir.mkdir(parents=True, exist_ok=True)

    def _record_path(self, key: str) -> Path:
        try:
            validate_safe_path_component(key, "Record key")
        except ValueError as e:
            raise StorageError(
                str(e), operation="write", code=ErrorCode.STORAGE_WRITE_FAILED
            ) from e
        return self.notes_dir / f"{key}{self.SUFFIX}"

    def _rel(self, path: Path) -> str:
        return str(path.relative_to(self.repo_path))

    # =========================================================================
    # VersionedStore contract
    # =========================================================================

    def read_all(self) -> List[StoredRecord]:
        """Read every note file of the working copy.

        Files that cannot be read are logged and left out; only a failure to
        list the notes directory is fatal.
        """
        if not self.notes_dir.exists():
            return []
        try:
            paths = sorted(self.notes_dir.glob(f"*{self.SUFFIX}"))
        except OSError as e:
            raise StorageError(
                "Cannot list notes directory",
                operation="read",
                path=str(self.notes_dir),
                original_error=e,
            ) from e

        records = []
        for path in paths:
            try:
                payload = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Cannot read record file {path.name}: {e}")
                continue
            records.append(StoredRecord(key=path.stem, payload=payload))
        return records

    def write(self, record: StoredRecord) -> None:
        """Atomically replace a note file and stage it."""
        path = self._record_path(record.key)
        previous = path.read_bytes() if path.exists() else None

        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(record.payload)
            os.replace(tmp_path, path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(
                f"Failed to write record {record.key}",
                operation="write",
                path=str(path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

        try:
            self._run_git(["add", "--", self._rel(path)])
        except GitError:
            self._restore(path, previous)
            raise

        # Keep the oldest snapshot if the same file is written twice
        self._pending.setdefault(path, previous)

    def record_change(self, description: str) -> ChangeEntry:
        """Commit the staged note files with ``description`` as message."""
        message = sanitize_commit_message(description)
        rel_paths = [self._rel(p) for p in self._pending]

        try:
            if rel_paths and self._has_staged_changes(rel_paths):
                self._run_git(["commit", "-m", message, "--"] + rel_paths)
            else:
                # Keep one change per operation even if the bytes are identical
                self._run_git(["commit", "--allow-empty", "-m", message])
        except GitError:
            logger.error(f"Commit failed, rolling back {len(rel_paths)} staged files")
            self._rollback()
            raise

        self._pending.clear()
        entry = self._head_entry()
        logger.debug(f"Recorded change {entry.short_id}: {message}")
        return entry

    def history(self, limit: int = 50, key: Optional[str] = None) -> List[ChangeEntry]:
        """Get the commit log, optionally restricted to one note file."""
        args = ["log", f"-{limit}", _LOG_FORMAT]
        if key is not None:
            args += ["--", self._rel(self._record_path(key))]

        # A repository without commits makes git log exit non-zero
        result = self._run_git(args, check=False)
        if result.returncode != 0 or not result.stdout.strip():
            return []

        return [
            self._parse_log_line(line)
            for line in result.stdout.splitlines()
            if line.strip()
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _has_staged_changes(self, rel_paths: List[str]) -> bool:
        result = self._run_git(["diff", "--cached", "--name-only", "--"] + rel_paths)
        return bool(result.stdout.strip())

    def _head_entry(self) -> ChangeEntry:
        result = self._run_git(["log", "-1", _LOG_FORMAT])
        if not result.stdout.strip():
            raise GitError("Failed to read HEAD after commit")
        return self._parse_log_line(result.stdout.strip())

    @staticmethod
    def _parse_log_line(line: str) -> ChangeEntry:
        """Parse a git log line in format '%H<US>%ct<US>%s'."""
        commit_hash, unix_timestamp, subject = line.split(_SEP, 2)
        timestamp = datetime.fromtimestamp(int(unix_timestamp), tz=timezone.utc)
        return ChangeEntry(change_id=commit_hash, description=subject, timestamp=timestamp)

    def _restore(self, path: Path, previous: Optional[bytes]) -> None:
        """Put a file back to its pre-write content and re-stage it."""
        rel = self._rel(path)
        try:
            if previous is None:
                path.unlink(missing_ok=True)
                self._run_git(["rm", "--cached", "--ignore-unmatch", "-q", "--", rel], check=False)
            else:
                path.write_bytes(previous)
                self._run_git(["add", "--", rel], check=False)
        except OSError as e:
            logger.error(f"Could not restore {rel} after failed change: {e}")

    def _rollback(self) -> None:
        for path, previous in self._pending.items():
            self._restore(path, previous)
        self._pending.clear()
