"""HTTP server receiving GitHub webhooks."""

import json

from aiohttp import web
from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from blobmirror.application.services.ingestion import IngestionService
from blobmirror.config.models import ServerConfig
from blobmirror.domain.entities.webhook import parse_webhook_event
from blobmirror.presentation.http.signature import verify_signature


class HTTPServer:
    """HTTP server for GitHub webhooks and health checks.

    This server provides endpoints for:
    - POST /webhook: Verify, decode and ingest a GitHub webhook
    - GET /healthz: Kubernetes liveness probe

    Args:
        config: Server configuration containing host and port.
        webhook_secret: Secret shared with the GitHub App.
        ingestion: Service applying decoded events.
        logger: Structured logger for logging.
    """

    def __init__(
        self,
        config: ServerConfig,
        webhook_secret: str,
        ingestion: IngestionService,
        logger: BoundLogger,
    ) -> None:
        self.config = config
        self._webhook_secret = webhook_secret
        self._ingestion = ingestion
        self._logger = logger
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    @property
    def is_running(self) -> bool:
        """Return True if the server is running."""
        return self._site is not None

    @property
    def actual_port(self) -> int:
        """Return the actual port the server is listening on.

        Raises:
            RuntimeError: If the server is not running.
        """
        if self._site is None:
            raise RuntimeError("Server is not running")
        server = getattr(self._site, "_server", None)
        if server is None:
            raise RuntimeError("Server is not running")
        sockets = getattr(server, "sockets", None)
        if sockets:
            return sockets[0].getsockname()[1]
        raise RuntimeError("No sockets available")

    def create_app(self) -> web.Application:
        """Create and return the aiohttp Application.

        This method is exposed for testing purposes.
        """
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health_check)
        app.router.add_post("/webhook", self._handle_webhook)
        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._app = self.create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()
        self._logger.info(
            "HTTP server started",
            host=self.config.host,
            port=self.actual_port,
        )

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            self._app = None
            self._logger.info("HTTP server stopped")

    async def _handle_health_check(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        """Handle POST /webhook requests.

        Processing failures are logged by the ingestion service and still
        answered with 200, since GitHub cannot act on them.
        """
        body = await request.read()

        signature = request.headers.get("X-Hub-Signature-256")
        if not signature:
            return web.json_response({"error": "Missing signature header"}, status=401)
        if not verify_signature(self._webhook_secret, body, signature):
            self._logger.warning("Invalid webhook signature")
            return web.json_response({"error": "Invalid signature"}, status=401)

        kind = request.headers.get("X-GitHub-Event")
        if not kind:
            return web.json_response({"error": "Missing GitHub event header"}, status=400)

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return web.json_response({"error": "Invalid JSON"}, status=400)
        if not isinstance(payload, dict):
            return web.json_response({"error": "Invalid JSON"}, status=400)

        try:
            event = parse_webhook_event(kind, payload)
        except ValidationError as e:
            self._logger.warning("Malformed webhook payload", event_type=kind, error=str(e))
            return web.json_response({"error": "Malformed payload"}, status=400)

        if event is None:
            self._logger.debug("Ignoring webhook event", event_type=kind)
            return web.json_response({"status": "ignored"})

        self._logger.info(
            "Webhook received",
            event_type=kind,
            delivery=request.headers.get("X-GitHub-Delivery"),
        )
        await self._ingestion.handle(event)
        return web.json_response({"status": "ok"})
