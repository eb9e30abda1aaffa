"""
Tests for the GitHub watcher.
"""
import base64
from unittest.mock import AsyncMock, patch

import pytest

from repo_rag.config.repositories import GitHubRepoConfig
from repo_rag.integrations.github_watcher import GitHubWatcher, should_exclude_file


def encoded(text):
    return {"content": base64.b64encode(text.encode("utf-8")).decode("ascii")}


class TestShouldExcludeFile:

    def test_prefix_rule(self):
        assert should_exclude_file("docs/generated/api.md", ["docs/generated/**"]) is True
        assert should_exclude_file("src/docs/generated/api.md", ["docs/generated/**"]) is False

    def test_substring_rule(self):
        assert should_exclude_file("src/legacy/old.py", ["legacy"]) is True

    def test_no_rules(self):
        assert should_exclude_file("src/app.py", None) is False
        assert should_exclude_file("src/app.py", []) is False


class TestGitHubWatcher:

    def setup_method(self):
        """Set up test fixtures."""
        self.repo = GitHubRepoConfig(owner="acme", repo="api", branch="main", exclude_paths=["docs/**"])

    def _watcher(self, rag_engine):
        watcher = GitHubWatcher(rag_engine, github_token="token", webhook_secret="secret")
        watcher.add_repositories([self.repo])
        watcher._request = AsyncMock()
        return watcher

    def test_find_repository(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)

        assert watcher.find_repository("acme/api") is self.repo
        assert watcher.find_repository("acme/other") is None
        assert watcher.get_watched_repositories() == [self.repo]

    @pytest.mark.asyncio
    async def test_sync_repository(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)
        tree = {"tree": [
            {"path": "src", "type": "tree"},
            {"path": "src/app.py", "type": "blob"},
            {"path": "docs/guide.md", "type": "blob"},
            {"path": "node_modules/x/index.js", "type": "blob"},
            {"path": "logo.png", "type": "blob"},
        ]}
        watcher._request.side_effect = [tree, encoded("def main():\n    pass\n")]

        processed = await watcher.sync_repository(self.repo)

        assert processed == 1
        item = mock_rag_engine.add_knowledge.call_args.args[0]
        assert item.id == "acme_api_src_app_py"
        assert item.metadata.repository == "acme/api"
        assert watcher._request.call_args_list[0].args == ("GET", "/repos/acme/api/git/trees/main")
        assert watcher._request.call_args_list[1].args == ("GET", "/repos/acme/api/contents/src/app.py")

    @pytest.mark.asyncio
    async def test_sync_repository_api_error(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)
        watcher._request.side_effect = ValueError("GitHub API error (404): Not Found")

        assert await watcher.sync_repository(self.repo) == 0
        mock_rag_engine.add_knowledge.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_file_content(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)

        watcher._request.return_value = encoded("hello")
        assert await watcher.fetch_file_content("acme", "api", "README.md") == "hello"

        watcher._request.return_value = [{"name": "a.py"}]
        assert await watcher.fetch_file_content("acme", "api", "src") is None

        watcher._request.return_value = {"content": base64.b64encode(b"\xff\xfe\x00").decode("ascii")}
        assert await watcher.fetch_file_content("acme", "api", "bin.dat") is None

    @pytest.mark.asyncio
    async def test_push_event(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)
        watcher._request.return_value = encoded("x = 1\n")
        payload = {
            "repository": {"full_name": "acme/api"},
            "commits": [{
                "added": ["src/new.py"],
                "modified": ["src/app.py", "docs/readme.md"],
                "removed": ["src/old.py", "assets/logo.png"]
            }]
        }

        await watcher.handle_webhook_event(payload)

        assert mock_rag_engine.add_knowledge.call_args.args[0].id == "acme_api_src_new_py"
        assert mock_rag_engine.update_knowledge.call_args.args[0].id == "acme_api_src_app_py"
        mock_rag_engine.remove_knowledge.assert_called_once_with("acme_api_src_old_py")
        assert watcher._request.call_count == 2

    @pytest.mark.asyncio
    async def test_push_event_for_unwatched_repository(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)
        payload = {
            "repository": {"full_name": "acme/other"},
            "commits": [{"added": ["src/app.py"], "modified": [], "removed": []}]
        }

        await watcher.handle_webhook_event(payload)

        watcher._request.assert_not_called()
        mock_rag_engine.add_knowledge.assert_not_called()

    @pytest.mark.asyncio
    async def test_ping_event(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)
        await watcher.handle_webhook_event({"zen": "Keep it logically awesome.", "repository": {"full_name": "acme/api"}})
        watcher._request.assert_not_called()

    @pytest.mark.asyncio
    async def test_repository_deleted_event(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)

        await watcher.handle_webhook_event({"action": "deleted", "repository": {"full_name": "acme/api"}})

        mock_rag_engine.remove_repository_knowledge.assert_called_once_with("acme/api")

    @pytest.mark.asyncio
    async def test_repository_created_event(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)

        with patch.object(watcher, "sync_repository", AsyncMock(return_value=0)) as mock_sync:
            await watcher.handle_webhook_event({
                "action": "created",
                "repository": {"full_name": "acme/new", "default_branch": "develop"}
            })

        synced = mock_sync.call_args.args[0]
        assert synced.full_name == "acme/new"
        assert synced.branch == "develop"

    @pytest.mark.asyncio
    async def test_add_webhook(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)
        watcher._request.return_value = {"id": 42}

        hook = await watcher.add_webhook_to_repository(self.repo, "https://rag.example.com/webhook/github")

        assert hook == {"id": 42}
        method, path = watcher._request.call_args.args
        body = watcher._request.call_args.kwargs["json"]
        assert (method, path) == ("POST", "/repos/acme/api/hooks")
        assert body["events"] == ["push", "repository"]
        assert body["config"]["url"] == "https://rag.example.com/webhook/github"
        assert body["config"]["secret"] == "secret"

    @pytest.mark.asyncio
    async def test_add_webhook_failure(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)
        watcher._request.side_effect = ValueError("GitHub API error (422): exists")

        assert await watcher.add_webhook_to_repository(self.repo, "https://x/webhook/github") is None

    @pytest.mark.asyncio
    async def test_remove_webhook(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)
        watcher._request.return_value = None

        assert await watcher.remove_webhook(self.repo, 42) is True
        watcher._request.assert_called_once_with("DELETE", "/repos/acme/api/hooks/42")

    @pytest.mark.asyncio
    async def test_search_organization_repositories(self, mock_rag_engine):
        watcher = self._watcher(mock_rag_engine)
        watcher._request.return_value = [
            {"owner": {"login": "acme"}, "name": "api", "default_branch": "trunk"},
            {"owner": {"login": "acme"}, "name": "web", "default_branch": None},
        ]

        repos = await watcher.search_organization_repositories("acme")

        assert [(r.full_name, r.branch) for r in repos] == [("acme/api", "trunk"), ("acme/web", "main")]
