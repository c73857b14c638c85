"""REST decision surface for loopguard.

Endpoints:
  POST /assess                  - Score a transcript
  POST /interruptions           - Request an interruption (blocks until decided)
  GET  /interruptions           - Pending interruption + sticky skip state
  POST /interruptions/respond   - Resolve the pending interruption
  POST /session/reset           - Re-enable interruption prompts
  GET  /health                  - Liveness check
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from loopguard.classifier.classifier import OracleError
from loopguard.classifier.transcript import InvalidTranscript
from loopguard.interrupts.schemas import InterruptionRequest
from loopguard.session import LoopGuardSession

logger = logging.getLogger(__name__)


def create_app(session: LoopGuardSession, lifespan: Any | None = None) -> Starlette:
    """Create the Starlette ASGI app bound to one session."""

    coordinator = session.coordinator

    async def assess(request: Request) -> JSONResponse:
        """POST /assess - Score a transcript with the circularity oracle."""
        try:
            body = await request.json()
        except Exception:
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)

        messages = body.get("messages") if isinstance(body, dict) else body
        if messages is None:
            return JSONResponse({"error": "Missing required field: messages"}, status_code=400)

        try:
            assessment = await session.classifier.assess(messages)
        except InvalidTranscript as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except OracleError as e:
            logger.error("Assess error: %s", e)
            return JSONResponse({"error": str(e)}, status_code=502)

        return JSONResponse(assessment.model_dump(mode="json"))

    async def request_interruption(request: Request) -> JSONResponse:
        """POST /interruptions - Suspend until an operator decides."""
        try:
            body = await request.json()
            interruption = InterruptionRequest.model_validate(body)
        except ValidationError as e:
            return JSONResponse({"error": e.errors()[0]["msg"]}, status_code=400)
        except Exception:
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)

        # Busy check here so clients get a distinct status; the tool maps it the same way
        if coordinator.is_pending():
            return JSONResponse(
                {"success": False, "error": "Interruption error: an interruption is already pending", "halt": False},
                status_code=409,
            )

        result = await session.tool.request_interruption(interruption)
        return JSONResponse(result.model_dump(mode="json"))

    async def get_interruption(request: Request) -> JSONResponse:
        """GET /interruptions - Current protocol state."""
        pending = coordinator.pending_request
        return JSONResponse({
            "pending": coordinator.is_pending(),
            "interruption_id": coordinator.pending_id,
            "request": pending.model_dump(mode="json") if pending else None,
            "skip_future_interruptions": coordinator.get_skip_future_interruptions(),
        })

    async def respond(request: Request) -> JSONResponse:
        """POST /interruptions/respond - Resolve the pending interruption."""
        try:
            body = await request.json()
        except Exception:
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)

        should_continue = body.get("should_continue") if isinstance(body, dict) else None
        if not isinstance(should_continue, bool):
            return JSONResponse({"error": "Missing required field: should_continue"}, status_code=400)
        skip = body.get("skip_future_prompts")
        if skip is not None and not isinstance(skip, bool):
            return JSONResponse({"error": "skip_future_prompts must be a boolean"}, status_code=400)

        interruption_id = body.get("interruption_id")
        if interruption_id is not None and not isinstance(interruption_id, str):
            return JSONResponse({"error": "interruption_id must be a string"}, status_code=400)

        was_pending = coordinator.is_pending()
        coordinator.respond_to_interruption(should_continue, skip, interruption_id=interruption_id)
        return JSONResponse({"resolved": was_pending and not coordinator.is_pending()})

    async def reset_session(request: Request) -> JSONResponse:
        """POST /session/reset - Clear the sticky skip flag."""
        coordinator.reset_session()
        return JSONResponse({"skip_future_interruptions": coordinator.get_skip_future_interruptions()})

    async def health(request: Request) -> JSONResponse:
        """GET /health - Liveness check."""
        return JSONResponse({
            "status": "ok",
            "session_id": session.session_id,
            "event_bus": session.bus.running,
        })

    routes = [
        Route("/assess", assess, methods=["POST"]),
        Route("/interruptions", request_interruption, methods=["POST"]),
        Route("/interruptions", get_interruption, methods=["GET"]),
        Route("/interruptions/respond", respond, methods=["POST"]),
        Route("/session/reset", reset_session, methods=["POST"]),
        Route("/health", health, methods=["GET"]),
    ]

    return Starlette(routes=routes, lifespan=lifespan)
