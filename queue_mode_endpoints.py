import logging
import os
from urllib.parse import urlparse

import azure.functions as func

if str(os.getenv("UNIT_TESTING", "")).strip().lower() in {"1", "true", "yes", "on"}:
    # Keeps unit tests importable without bootstrapping the full function host.
    app = func.FunctionApp()
else:
    from function_app import app
from services.exceptions import FatalUpstreamError, MissingParameterError, PartialMutationError
from services.queue_mode_rules import RoutingMode
from services.queue_mode_service import QueueModeService
from services.status_page import render_error, render_mutation_failure, render_status, status_url
from services.time_source import get_clock
from services.webex_client import build_client_from_settings

logger = logging.getLogger(__name__)

DEFAULT_ROUTE_PATH = "/api/queue-mode"


def _html_response(body: str, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(body, status_code=status_code, mimetype="text/html", charset="utf-8")


def _base_path(req: func.HttpRequest) -> str:
    path = urlparse(req.url or "").path
    return path or DEFAULT_ROUTE_PATH


def _required_params(req: func.HttpRequest) -> tuple[str, str]:
    location_name = (req.params.get("locationName") or "").strip()
    queue_name = (req.params.get("queueName") or "").strip()
    missing = [name for name, value in (("locationName", location_name), ("queueName", queue_name)) if not value]
    if missing:
        raise MissingParameterError(missing)
    return location_name, queue_name


def _build_service() -> QueueModeService:
    return QueueModeService(build_client_from_settings(), get_clock())


def handle_queue_mode(req: func.HttpRequest, service_factory=_build_service) -> func.HttpResponse:
    try:
        location_name, queue_name = _required_params(req)
    except MissingParameterError as exc:
        logger.warning("Queue mode request rejected: %s", exc)
        return _html_response(render_error(str(exc)))

    base_path = _base_path(req)
    target_mode = RoutingMode.from_param(req.params.get("mode"))
    try:
        service = service_factory()
    except ValueError as exc:
        logger.error("Queue mode service is misconfigured: %s", exc)
        return _html_response(render_error(f"Call routing is not configured: {exc}"), status_code=500)
    try:
        if target_mode is not None:
            logger.info("Processing mode change for %s/%s to %s", location_name, queue_name, target_mode.label)
            service.change_mode(location_name, queue_name, target_mode)
            # Drop mode= so a refresh does not re-apply the change.
            return func.HttpResponse(
                status_code=302,
                headers={"Location": status_url(base_path, location_name, queue_name)},
            )
        status = service.report_status(location_name, queue_name)
    except PartialMutationError as exc:
        return _html_response(
            render_mutation_failure(exc, status_url(base_path, location_name, queue_name)),
            status_code=502,
        )
    except FatalUpstreamError as exc:
        logger.error("Queue mode request for %s/%s failed: %s", location_name, queue_name, exc)
        return _html_response(render_error(f"Unable to load call routing: {exc}"), status_code=502)
    return _html_response(render_status(status, base_path))


@app.function_name(name="QueueModeApi")
@app.route(route="queue-mode", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def queue_mode_api(req: func.HttpRequest) -> func.HttpResponse:
    logging.info("Queue mode endpoint called.")
    return handle_queue_mode(req)
