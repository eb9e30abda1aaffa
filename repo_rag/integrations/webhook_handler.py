"""
Webhook Server

HTTP endpoints for GitHub webhook delivery, health and status checks, and
manual sync / webhook management. GitHub deliveries are authenticated with
the ``X-Hub-Signature-256`` HMAC when a secret is configured.
"""

import hmac
import json
import hashlib
import logging
from datetime import datetime, timezone
from typing import Optional

from aiohttp import web

from repo_rag.config.repositories import GitHubRepoConfig
from repo_rag.integrations.github_watcher import GitHubWatcher

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE",
    "Access-Control-Allow-Headers": "Origin, X-Requested-With, Content-Type, Accept, Authorization",
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def compute_signature(secret: str, payload: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


@web.middleware
async def cors_middleware(request: web.Request, handler):
    response = await handler(request)
    response.headers.update(CORS_HEADERS)
    return response


class WebhookHandler:
    """aiohttp application serving GitHub webhooks and management routes"""
    
    def __init__(self, github_watcher: GitHubWatcher, webhook_secret: str = ""):
        """Initialize with the watcher that applies webhook events
        
        Args:
            github_watcher: GitHub watcher
            webhook_secret: Shared secret for signature verification
        """
        self.github_watcher = github_watcher
        self.webhook_secret = webhook_secret
        self.logger = logging.getLogger("repo_rag.integrations.webhook_handler")
        self.runner: Optional[web.AppRunner] = None
        self.app = self._create_app()
    
    def _create_app(self) -> web.Application:
        app = web.Application(middlewares=[cors_middleware])
        app.router.add_post("/webhook/github", self.handle_github_webhook)
        app.router.add_get("/health", self.handle_health)
        app.router.add_get("/status", self.handle_status)
        app.router.add_post("/sync/{owner}/{repo}", self.handle_manual_sync)
        app.router.add_get("/webhooks/{owner}/{repo}", self.handle_list_webhooks)
        app.router.add_post("/webhooks/{owner}/{repo}", self.handle_add_webhook)
        return app
    
    def verify_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        """Check a delivery's HMAC-SHA256 signature
        
        Deliveries are accepted unsigned when no secret is configured.
        """
        if not self.webhook_secret:
            self.logger.warning("No webhook secret configured, skipping signature verification")
            return True
        
        if not signature:
            return False
        
        return hmac.compare_digest(signature, compute_signature(self.webhook_secret, payload))
    
    async def handle_github_webhook(self, request: web.Request) -> web.Response:
        payload = await request.read()
        
        if not self.verify_signature(payload, request.headers.get("X-Hub-Signature-256")):
            self.logger.warning("Invalid webhook signature")
            return web.json_response({"error": "Invalid signature"}, status=401)
        
        event = request.headers.get("X-GitHub-Event", "")
        delivery_id = request.headers.get("X-GitHub-Delivery", "")
        self.logger.info(f"GitHub webhook received: {event} ({delivery_id})")
        
        try:
            event_data = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return web.json_response(
                {"error": "Webhook processing failed", "message": f"Invalid JSON payload: {str(e)}"},
                status=400
            )
        
        if event == "ping":
            self.logger.info("GitHub webhook ping received")
            return web.json_response({"message": "pong"})
        
        try:
            await self.github_watcher.handle_webhook_event({"type": event, **event_data})
        except Exception as e:
            self.logger.error(f"Webhook processing error: {str(e)}")
            return web.json_response(
                {"error": "Webhook processing failed", "message": str(e)},
                status=500
            )
        
        return web.json_response({
            "message": "Webhook processed successfully",
            "event": event,
            "delivery_id": delivery_id,
            "timestamp": _timestamp()
        })
    
    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "timestamp": _timestamp()})
    
    async def handle_status(self, request: web.Request) -> web.Response:
        watched_repos = self.github_watcher.get_watched_repositories()
        return web.json_response({
            "status": "active",
            "watched_repositories": len(watched_repos),
            "repositories": [repo.full_name for repo in watched_repos]
        })
    
    async def _read_json_body(self, request: web.Request) -> dict:
        if not request.can_read_body:
            return {}
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return {}
        return body if isinstance(body, dict) else {}
    
    async def handle_manual_sync(self, request: web.Request) -> web.Response:
        owner = request.match_info["owner"]
        repo = request.match_info["repo"]
        body = await self._read_json_body(request)
        
        processed = await self.github_watcher.sync_repository(
            GitHubRepoConfig(owner=owner, repo=repo, branch=body.get("branch") or "main")
        )
        
        return web.json_response({
            "message": f"Successfully synced {owner}/{repo}",
            "processed_files": processed,
            "timestamp": _timestamp()
        })
    
    async def handle_list_webhooks(self, request: web.Request) -> web.Response:
        repo = GitHubRepoConfig(owner=request.match_info["owner"], repo=request.match_info["repo"])
        webhooks = await self.github_watcher.list_webhooks(repo)
        return web.json_response({"webhooks": webhooks})
    
    async def handle_add_webhook(self, request: web.Request) -> web.Response:
        repo = GitHubRepoConfig(owner=request.match_info["owner"], repo=request.match_info["repo"])
        body = await self._read_json_body(request)
        webhook_url = body.get("webhook_url") or f"{request.scheme}://{request.host}/webhook/github"
        
        hook = await self.github_watcher.add_webhook_to_repository(repo, webhook_url)
        if hook is None:
            return web.json_response({"error": "Failed to add webhook"}, status=500)
        
        return web.json_response({
            "message": f"Webhook added to {repo.full_name}",
            "timestamp": _timestamp()
        })
    
    async def start(self, host: str = "0.0.0.0", port: int = 3000) -> None:
        """Start serving in the background of the running event loop"""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, host, port)
        await site.start()
        
        self.logger.info(f"Webhook server running on port {port}")
        self.logger.info(f"GitHub webhook endpoint: http://localhost:{port}/webhook/github")
    
    async def stop(self) -> None:
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
            self.logger.info("Webhook server stopped")
