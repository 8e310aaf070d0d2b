"""Tests for the git command runner and GitService queries."""

import pytest

from diffpilot_mcp_server.services import git as git_module
from diffpilot_mcp_server.services.git import (
    CommandFailure,
    DetachedHeadError,
    GitService,
    InvalidRefNameError,
    is_valid_branch_name,
    run_git_command,
    validate_branch_name,
)

from conftest import commit, git


class TestRunGitCommand:
    @pytest.mark.asyncio
    async def test_success(self, temp_git_repo):
        """Test a successful command returns exit code 0 and its output."""
        result = await run_git_command(["rev-parse", "--abbrev-ref", "HEAD"], temp_git_repo)
        assert result.exit_code == 0
        assert result.ok
        assert result.stdout.strip() == "main"
        assert "main" in result.output

    @pytest.mark.asyncio
    async def test_failure_keeps_diagnostics(self, temp_git_repo):
        """Test a failing command returns git's exit code and error text."""
        result = await run_git_command(["rev-parse", "--verify", "no-such-ref"], temp_git_repo)
        assert result.exit_code not in (0, -1)
        assert not result.ok
        assert result.output.strip()

    @pytest.mark.asyncio
    async def test_timeout(self, temp_git_repo):
        """Test a command exceeding its timeout is reported with exit code -1."""
        result = await run_git_command(["log"], temp_git_repo, timeout=0)
        assert result.exit_code == -1
        assert result.timed_out
        assert "timed out" in result.output
        assert "git log" in result.output

    @pytest.mark.asyncio
    async def test_missing_binary(self, temp_git_repo, monkeypatch):
        """Test a spawn failure does not raise."""
        monkeypatch.setattr(git_module, "GIT_EXECUTABLE", "definitely-not-a-git-binary")
        result = await run_git_command(["status"], temp_git_repo)
        assert result.exit_code == 1
        assert result.output

    @pytest.mark.asyncio
    async def test_missing_working_dir(self, tmp_path):
        """Test a non-existent working directory does not raise."""
        result = await run_git_command(["status"], tmp_path / "missing")
        assert result.exit_code == 1
        assert result.output


class TestBranchNameValidation:
    def test_valid_names(self):
        assert is_valid_branch_name("main")
        assert is_valid_branch_name("feature/new-feature")
        assert is_valid_branch_name("release/1.2.0")
        assert is_valid_branch_name("user/john/fix_123")

    def test_invalid_names(self):
        assert not is_valid_branch_name("")
        assert not is_valid_branch_name(None)
        assert not is_valid_branch_name("   ")
        assert not is_valid_branch_name("branch..name")
        assert not is_valid_branch_name("-delete")
        assert not is_valid_branch_name("main branch")
        assert not is_valid_branch_name("branch~1")
        assert not is_valid_branch_name("branch^name")
        assert not is_valid_branch_name("branch:name")

    def test_injection_attempts(self):
        assert not is_valid_branch_name("main; rm -rf /")
        assert not is_valid_branch_name("main | cat /etc/passwd")
        assert not is_valid_branch_name("$(whoami)")
        assert not is_valid_branch_name("`whoami`")

    def test_validate_branch_name(self):
        assert validate_branch_name("develop") == "develop"
        with pytest.raises(InvalidRefNameError) as exc_info:
            validate_branch_name("a..b", "base_branch")
        assert "base_branch" in str(exc_info.value)


class TestGitService:
    @pytest.mark.asyncio
    async def test_is_git_repository(self, temp_git_repo, tmp_path):
        assert await GitService(temp_git_repo).is_git_repository()
        outside = tmp_path / "plain"
        outside.mkdir()
        assert not await GitService(outside).is_git_repository()

    @pytest.mark.asyncio
    async def test_current_branch(self, temp_git_repo):
        """Test getting current git branch on a feature branch."""
        git(temp_git_repo, "checkout", "-b", "feature/test")
        service = GitService(temp_git_repo)
        assert await service.current_branch() == "feature/test"
        assert await service.require_current_branch() == "feature/test"

    @pytest.mark.asyncio
    async def test_current_branch_detached(self, temp_git_repo):
        """Test detached HEAD yields no branch."""
        git(temp_git_repo, "checkout", "--detach")
        service = GitService(temp_git_repo)
        assert await service.current_branch() is None
        with pytest.raises(DetachedHeadError):
            await service.require_current_branch()

    @pytest.mark.asyncio
    async def test_merge_base_and_ahead(self, temp_git_repo):
        base = git(temp_git_repo, "rev-parse", "HEAD")
        git(temp_git_repo, "checkout", "-b", "feature")
        commit(temp_git_repo, "f1")

        service = GitService(temp_git_repo)
        assert await service.merge_base("feature", "main") == base
        assert await service.is_ahead("feature", "main")
        assert not await service.is_ahead("main", "feature")
        assert await service.commit_count("main", "feature") == 1

    @pytest.mark.asyncio
    async def test_unknown_refs(self, temp_git_repo):
        """Test failures are reported as missing values, never as ancestry."""
        service = GitService(temp_git_repo)
        assert await service.merge_base("main", "nope") is None
        assert not await service.is_ahead("main", "nope")
        assert await service.rev_parse("nope") is None

    @pytest.mark.asyncio
    async def test_local_branches(self, temp_git_repo):
        git(temp_git_repo, "branch", "develop")
        git(temp_git_repo, "branch", "feature/x")
        service = GitService(temp_git_repo)
        assert await service.local_branches(exclude="main") == ["develop", "feature/x"]
        assert "main" in await service.local_branches()

    @pytest.mark.asyncio
    async def test_remote_branches_skip_head_pointer(self, repo_with_origin):
        git(repo_with_origin, "branch", "develop")
        git(repo_with_origin, "push", "origin", "develop")
        git(repo_with_origin, "remote", "set-head", "origin", "main")

        service = GitService(repo_with_origin)
        assert await service.remote_branches("origin") == ["develop", "main"]
        assert await service.remote_branches("upstream") == []
        assert await service.remotes() == ["origin"]

    @pytest.mark.asyncio
    async def test_default_branch_from_symbolic_head(self, repo_with_origin):
        git(repo_with_origin, "branch", "trunk")
        git(repo_with_origin, "push", "origin", "trunk")
        git(repo_with_origin, "remote", "set-head", "origin", "trunk")
        assert await GitService(repo_with_origin).default_branch_of("origin") == "trunk"

    @pytest.mark.asyncio
    async def test_default_branch_probe(self, repo_with_origin):
        """Test common names are probed when the remote HEAD is not set."""
        assert await GitService(repo_with_origin).default_branch_of("origin") == "main"

    @pytest.mark.asyncio
    async def test_default_branch_without_remote(self, temp_git_repo):
        assert await GitService(temp_git_repo).default_branch_of("origin") is None

    @pytest.mark.asyncio
    async def test_tracking_config(self, repo_with_origin):
        service = GitService(repo_with_origin)
        assert await service.tracking_merge_ref("main") == "refs/heads/main"
        assert await service.configured_remote("main") == "origin"
        assert await service.tracking_merge_ref("nope") is None

    @pytest.mark.asyncio
    async def test_remote_of(self, repo_with_origin):
        git(repo_with_origin, "branch", "develop")
        git(repo_with_origin, "push", "origin", "develop")
        git(repo_with_origin, "branch", "local-only")

        service = GitService(repo_with_origin)
        assert await service.remote_of("main") == "origin"
        assert await service.remote_of("develop") == "origin"
        assert await service.remote_of("local-only") is None

    @pytest.mark.asyncio
    async def test_branch_exists(self, repo_with_origin):
        git(repo_with_origin, "branch", "develop")
        git(repo_with_origin, "push", "origin", "develop")
        git(repo_with_origin, "branch", "-D", "develop")

        service = GitService(repo_with_origin)
        assert await service.branch_exists("main", "origin")
        assert await service.branch_exists("develop", "origin")
        assert not await service.branch_exists("develop", "upstream")
        assert not await service.branch_exists("gone", "origin")

    @pytest.mark.asyncio
    async def test_reflog_text(self, temp_git_repo):
        git(temp_git_repo, "branch", "feature", "main")
        reflog = await GitService(temp_git_repo).reflog_text("feature")
        assert "branch: Created from main" in reflog

    @pytest.mark.asyncio
    async def test_unpushed_commit_count(self, repo_with_origin):
        service = GitService(repo_with_origin)
        assert await service.unpushed_commit_count("main", "origin") == 0
        commit(repo_with_origin, "local")
        assert await service.unpushed_commit_count("main", "origin") == 1
        assert await service.unpushed_commit_count("main", "upstream") == 0

    @pytest.mark.asyncio
    async def test_diff(self, temp_git_repo):
        git(temp_git_repo, "checkout", "-b", "feature")
        commit(temp_git_repo, "added-file")
        service = GitService(temp_git_repo)

        diff = await service.diff("main", "feature")
        assert "added-file.txt" in diff

        with pytest.raises(CommandFailure) as exc_info:
            await service.diff("nope", "feature")
        assert exc_info.value.result.exit_code != 0
