"""
Repository activity reader.

Reads today's commits, the current branch and the working tree status
from a local Git repository with GitPython.
"""

import logging
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import List, Optional, Union

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from shared.models import ActivitySnapshot, CommitInfo

logger = logging.getLogger(__name__)


class GitActivityReader:
    """Read repository activity for one day."""

    def __init__(self, repo_path: Union[str, Path] = "."):
        self.repo_path = str(repo_path)

    def _open_repo(self) -> Repo:
        return Repo(self.repo_path, search_parent_directories=True)

    @staticmethod
    def extract_commit_info(commit) -> CommitInfo:
        """Extract the fields the tracker reports from a GitPython commit."""
        return CommitInfo(
            hash=commit.hexsha,
            message=commit.summary.strip() if isinstance(commit.summary, str) else "",
            author=commit.author.name or "",
            timestamp=datetime.fromtimestamp(commit.committed_date, tz=timezone.utc),
            files_changed=len(commit.stats.files),
        )

    def get_today_commits(self, repo: Repo, today: date) -> List[CommitInfo]:
        """Commits reachable from HEAD made on ``today``, newest first."""
        since = datetime.combine(today, time.min).strftime("%Y-%m-%d %H:%M:%S")
        until = datetime.combine(today, time(23, 59, 59)).strftime("%Y-%m-%d %H:%M:%S")
        return [
            self.extract_commit_info(commit)
            for commit in repo.iter_commits("HEAD", since=since, until=until)
        ]

    @staticmethod
    def get_current_branch(repo: Repo) -> str:
        if repo.head.is_detached:
            return "detached"
        return repo.active_branch.name

    @staticmethod
    def get_modified_files(repo: Repo) -> List[str]:
        """Paths reported by ``git status --porcelain``, untracked files included."""
        output = repo.git.status("--porcelain")
        return [line[3:] for line in output.splitlines() if line.strip()]

    def read_activity(self, today: Optional[date] = None) -> Optional[ActivitySnapshot]:
        """
        Read today's repository activity.

        Returns None when the repository cannot be read (missing path,
        not a Git repository, no commits yet, git command failure).
        """
        today = today or date.today()
        try:
            repo = self._open_repo()
            try:
                commits = self.get_today_commits(repo, today)
                branch = self.get_current_branch(repo)
                modified = self.get_modified_files(repo)
            finally:
                repo.close()
        except (InvalidGitRepositoryError, NoSuchPathError):
            logger.error(f"Not a Git repository: {self.repo_path}")
            return None
        except (GitCommandError, ValueError, TypeError, OSError) as e:
            logger.error(f"Error getting git activity from {self.repo_path}: {e}")
            return None

        logger.debug(
            f"Read activity: {len(commits)} commits today on {branch}, "
            f"{len(modified)} modified files"
        )
        return ActivitySnapshot(
            today_commits=commits,
            current_branch=branch,
            has_uncommitted_changes=len(modified) > 0,
            modified_files=len(modified),
        )
