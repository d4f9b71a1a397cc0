"""FastAPI application entry point for the repository mirror.

Startup reconciles the mirror with GitHub before the webhook worker starts;
a failed reconciliation aborts startup. Afterwards GitHub webhook
deliveries are the only driver of updates.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from repomirror.config import MirrorSettings, get_settings
from repomirror.events.metrics import generate_metrics_output
from repomirror.logging_config import configure_logging
from repomirror.mirror import RepositoryMirror
from repomirror.webhook.handler import (
    WebhookHandler,
    WebhookParseError,
    WebhookValidationError,
)
from repomirror.webhook.receiver import WebhookReceiver

logger = logging.getLogger(__name__)

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def _redact_secret(value: Optional[str], visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if not value:
        return "<unset>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: MirrorSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Mirror configuration:")
    logger.info(f"  Repository: {settings.full_repository}")
    logger.info(f"  GitHub Base URL: {settings.github_base_url}")
    logger.info(f"  GitHub Token: {_redact_secret(settings.github_token)}")
    logger.info(f"  Webhook Secret: {_redact_secret(settings.webhook_secret)}")
    logger.info(f"  Hook URL: {settings.hook_url}")
    logger.info(f"  Cache Backend: {settings.cache_backend}")
    if settings.database_url:
        logger.info(f"  Database URL: {_redact_secret(settings.database_url)}")
    logger.info(f"  Event Sinks: {', '.join(settings.event_sinks)}")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def create_app(
    settings: Optional[MirrorSettings] = None,
    mirror: Optional[RepositoryMirror] = None,
) -> FastAPI:
    """Build the mirror service application.

    Args:
        settings: Settings to use; read from the environment at startup
                  when omitted.
        mirror: Pre-built mirror (tests); built from settings when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or get_settings()
        configure_logging(cfg.log_level)
        _log_configuration(cfg)

        repo_mirror = mirror or RepositoryMirror.from_settings(cfg)
        app.state.mirror = repo_mirror
        app.state.webhook_handler = WebhookHandler(secret=cfg.webhook_secret)

        logger.info("Repository mirror starting up...")
        try:
            result = await repo_mirror.start()
        except Exception:
            logger.exception("Reconciliation failed, refusing to start")
            await repo_mirror.close()
            raise
        logger.info(
            "Mirror reconciled",
            extra={"outcome": result.outcome.value, "issue_count": result.issue_count},
        )

        receiver = WebhookReceiver(repo_mirror.router)
        receiver.start()
        app.state.receiver = receiver

        logger.info("Repository mirror started successfully")

        yield

        logger.info("Repository mirror shutting down...")
        await receiver.stop()
        await repo_mirror.close()
        logger.info("Repository mirror shutdown complete")

    app = FastAPI(
        title="Repository Mirror",
        description="Webhook-driven mirror of a GitHub repository's issues and pull requests",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health():
        """Liveness probe endpoint."""
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready(request: Request):
        """Readiness probe: ready once reconciliation has succeeded."""
        repo_mirror: Optional[RepositoryMirror] = getattr(request.app.state, "mirror", None)
        if repo_mirror is None or not repo_mirror.ready:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "not_ready"},
            )
        receiver: Optional[WebhookReceiver] = getattr(request.app.state, "receiver", None)
        return {
            "status": "ready",
            "issues": len(repo_mirror.state.issues),
            "pending_events": receiver.pending if receiver else 0,
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_metrics_output(), media_type=PROMETHEUS_CONTENT_TYPE)

    @app.get("/repo")
    async def get_repo(request: Request):
        """The mirrored repository record."""
        repo_mirror: RepositoryMirror = request.app.state.mirror
        if repo_mirror.repo is None:
            raise HTTPException(status_code=503, detail="Mirror not populated")
        return repo_mirror.repo

    @app.get("/issues")
    async def list_issues(request: Request, state: Optional[str] = None):
        """All mirrored issues and pull requests, optionally filtered by state."""
        repo_mirror: RepositoryMirror = request.app.state.mirror
        return repo_mirror.list_issues(state=state)

    @app.get("/issues/{number}")
    async def get_issue(request: Request, number: int):
        """One mirrored issue or pull request with its comments."""
        repo_mirror: RepositoryMirror = request.app.state.mirror
        issue = repo_mirror.get_issue(number)
        if issue is None:
            raise HTTPException(status_code=404, detail=f"Issue #{number} not mirrored")
        return issue

    @app.post("/webhooks/github", status_code=status.HTTP_202_ACCEPTED)
    async def github_webhook(request: Request):
        """GitHub webhook receiver endpoint.

        Validates the delivery and enqueues it; the webhook worker applies
        events to the mirror in arrival order.
        """
        handler: WebhookHandler = request.app.state.webhook_handler
        body = await request.body()

        try:
            payload = handler.parse(request.headers, body)
        except WebhookValidationError:
            raise HTTPException(status_code=401, detail="Invalid webhook signature")
        except WebhookParseError as e:
            raise HTTPException(status_code=400, detail=str(e))

        if handler.is_ping(request.headers):
            return JSONResponse(status_code=200, content={"status": "pong"})

        receiver: WebhookReceiver = request.app.state.receiver
        await receiver.submit(payload)
        return {"status": "accepted"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "repomirror.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
    )
