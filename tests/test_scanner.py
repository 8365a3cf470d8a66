"""Tests for RepositoryScanner."""

import logging
import os
from pathlib import Path

import pytest

from gitscan.domain import GitStatus, RepoStatus
from gitscan.infra import GitClient
from gitscan.services import RepositoryScanner


class FakeGitClient(GitClient):
    """GitClient with canned status facts; marker detection stays real."""

    def __init__(self, facts=None):
        super().__init__()
        self.facts = facts or {}
        self.status_calls = []

    def status(self, path):
        self.status_calls.append(path)
        return self.facts.get(path, GitStatus(branch="main", has_upstream=True))


def make_repo(path):
    """Create a directory with a .git marker directory."""
    path = Path(path)
    (path / ".git" / "objects").mkdir(parents=True)
    return str(path)


def create_git_repo(fs, path):
    """Helper to create a fake git repo on the fake filesystem."""
    repo_path = Path(path)
    fs.create_dir(repo_path / ".git")
    fs.create_file(repo_path / ".git" / "HEAD", contents="ref: refs/heads/main\n")
    return str(repo_path)


def scan_paths(scanner, roots):
    return [handle.path for handle in scanner.scan([str(r) for r in roots])]


class TestScanOnFakeFilesystem:
    """Discovery rules, using pyfakefs."""

    def test_empty_root(self, fs):
        fs.create_dir("/home/user/code")
        scanner = RepositoryScanner(git_client=FakeGitClient())
        assert scan_paths(scanner, ["/home/user/code"]) == []

    def test_finds_repos_at_any_depth_in_sorted_order(self, fs):
        create_git_repo(fs, "/home/user/code/zeta")
        create_git_repo(fs, "/home/user/code/alpha")
        create_git_repo(fs, "/home/user/code/group/mid")
        fs.create_dir("/home/user/code/empty/deeper")
        scanner = RepositoryScanner(git_client=FakeGitClient())

        assert scan_paths(scanner, ["/home/user/code"]) == [
            "/home/user/code/alpha",
            "/home/user/code/group/mid",
            "/home/user/code/zeta",
        ]

    def test_does_not_descend_into_matched_repo(self, fs):
        create_git_repo(fs, "/code/outer")
        create_git_repo(fs, "/code/outer/vendor/inner")
        fs.create_file("/code/outer/.git/modules/sub/HEAD")
        scanner = RepositoryScanner(git_client=FakeGitClient())

        assert scan_paths(scanner, ["/code"]) == ["/code/outer"]

    def test_root_itself_is_a_repo(self, fs):
        create_git_repo(fs, "/code/project")
        create_git_repo(fs, "/code/project/sub")
        scanner = RepositoryScanner(git_client=FakeGitClient())

        assert scan_paths(scanner, ["/code/project"]) == ["/code/project"]

    def test_git_file_marks_a_working_copy(self, fs):
        """Submodules and linked worktrees use a .git file."""
        fs.create_file("/code/worktree/.git", contents="gitdir: /elsewhere/.git/worktrees/wt\n")
        scanner = RepositoryScanner(git_client=FakeGitClient())

        assert scan_paths(scanner, ["/code"]) == ["/code/worktree"]

    def test_include_nested_reports_inner_repos_but_skips_git_dir(self, fs):
        create_git_repo(fs, "/code/outer")
        create_git_repo(fs, "/code/outer/libs/inner")
        # A bogus marker inside .git must never be picked up
        create_git_repo(fs, "/code/outer/.git/bogus")
        scanner = RepositoryScanner(git_client=FakeGitClient(), include_nested=True)

        assert scan_paths(scanner, ["/code"]) == ["/code/outer", "/code/outer/libs/inner"]

    def test_exclude_dirs(self, fs):
        create_git_repo(fs, "/code/app")
        create_git_repo(fs, "/code/node_modules/dep")
        scanner = RepositoryScanner(git_client=FakeGitClient(), exclude_dirs=["node_modules"])

        assert scan_paths(scanner, ["/code"]) == ["/code/app"]

    def test_roots_scanned_in_given_order(self, fs):
        create_git_repo(fs, "/b/repo")
        create_git_repo(fs, "/a/repo")
        scanner = RepositoryScanner(git_client=FakeGitClient())

        assert scan_paths(scanner, ["/b", "/a"]) == ["/b/repo", "/a/repo"]

    def test_overlapping_roots_report_once(self, fs):
        create_git_repo(fs, "/code/sub/repo")
        scanner = RepositoryScanner(git_client=FakeGitClient())

        handles = list(scanner.scan(["/code/sub", "/code"]))
        assert [h.path for h in handles] == ["/code/sub/repo"]
        assert handles[0].root == "/code/sub"


class TestScanClassification:
    """Status facts are fetched once per repository and classified."""

    def test_status_computed_once_per_repo(self, tmp_path):
        clean = make_repo(tmp_path / "clean")
        dirty = make_repo(tmp_path / "dirty")
        git = FakeGitClient({
            dirty: GitStatus(has_upstream=True, untracked_files=1),
        })
        scanner = RepositoryScanner(git_client=git)

        handles = {h.path: h for h in scanner.scan([str(tmp_path)])}

        assert handles[clean].status == RepoStatus.BORING
        assert handles[dirty].status == RepoStatus.NOVEL
        assert handles[dirty].facts.untracked_files == 1
        assert sorted(git.status_calls) == sorted([clean, dirty])

    def test_scan_is_lazy(self, tmp_path):
        make_repo(tmp_path / "a")
        make_repo(tmp_path / "b")
        git = FakeGitClient()
        scanner = RepositoryScanner(git_client=git)

        iterator = scanner.scan([str(tmp_path)])
        assert git.status_calls == []
        next(iterator)
        assert len(git.status_calls) == 1


class TestScanSymlinks:
    """Symlinked directories must never cause endless traversal."""

    def test_cycle_terminates(self, tmp_path):
        root = tmp_path / "root"
        make_repo(root / "a" / "repo")
        os.symlink(root, root / "a" / "loop")
        os.symlink(root / "a", root / "back")

        scanner = RepositoryScanner(git_client=FakeGitClient())
        paths = scan_paths(scanner, [root])

        assert paths == [str(root / "a" / "repo")]

    def test_symlinked_repo_reported_once(self, tmp_path):
        root = tmp_path / "root"
        make_repo(root / "real")
        os.symlink(root / "real", root / "alias")

        scanner = RepositoryScanner(git_client=FakeGitClient())
        paths = scan_paths(scanner, [root])

        # "alias" sorts first and claims the physical directory
        assert paths == [str(root / "alias")]

    def test_symlinks_not_followed_when_disabled(self, tmp_path):
        outside = tmp_path / "outside"
        make_repo(outside / "repo")
        root = tmp_path / "root"
        root.mkdir()
        os.symlink(outside, root / "link")

        scanner = RepositoryScanner(git_client=FakeGitClient(), follow_symlinks=False)
        assert scan_paths(scanner, [root]) == []

        scanner = RepositoryScanner(git_client=FakeGitClient(), follow_symlinks=True)
        assert scan_paths(scanner, [root]) == [str(root / "link" / "repo")]


class TestScanErrors:
    """An unreadable directory is skipped with a warning."""

    def test_unreadable_directory_is_skipped(self, tmp_path, monkeypatch, caplog):
        make_repo(tmp_path / "a_repo")
        locked = tmp_path / "locked"
        make_repo(locked / "hidden")
        make_repo(tmp_path / "z_repo")

        real_scandir = os.scandir

        def fake_scandir(path):
            if os.fspath(path) == str(locked):
                raise PermissionError(13, "Permission denied", str(locked))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", fake_scandir)
        scanner = RepositoryScanner(git_client=FakeGitClient())

        with caplog.at_level(logging.WARNING, logger="gitscan"):
            paths = scan_paths(scanner, [tmp_path])

        assert paths == [str(tmp_path / "a_repo"), str(tmp_path / "z_repo")]
        assert any("locked" in record.getMessage() for record in caplog.records)
        assert all(record.levelno == logging.WARNING for record in caplog.records
                   if "locked" in record.getMessage())
