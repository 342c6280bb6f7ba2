"""
Server-Sent Events helpers.

Each event is one ``data: <json>\\n\\n`` frame encoded with msgspec. Streams
always end with exactly one terminal frame, either a result or an
``{"error", "details"}`` object.
"""

import logging
from typing import Any, AsyncIterator

import msgspec
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from ..core.errors import CoexpressionError
from ..core.models import BatchFailed

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(payload: BaseModel | dict[str, Any]) -> bytes:
    """Encode one SSE data frame."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", exclude_none=True)
    return b"data: " + msgspec.json.encode(payload) + b"\n\n"


def error_event(exc: CoexpressionError) -> bytes:
    """Terminal error frame for a domain exception."""
    return encode_event(BatchFailed(error=exc.message, details=exc.details))


async def _guarded(events: AsyncIterator[BaseModel]) -> AsyncIterator[bytes]:
    try:
        async for event in events:
            yield encode_event(event)
    except CoexpressionError as e:
        logger.warning("Stream aborted: %s", e.message)
        yield error_event(e)
    except Exception as e:
        # Headers are already sent, so the global handler cannot answer here
        logger.error("Unhandled error while streaming: %s", e, exc_info=True)
        yield encode_event(BatchFailed(error="Error processing results", details=None))


def sse_response(events: AsyncIterator[BaseModel]) -> StreamingResponse:
    """Wrap an async stream of models in a text/event-stream response."""
    return StreamingResponse(_guarded(events), media_type="text/event-stream", headers=SSE_HEADERS)


def single_event_response(payload: BaseModel | dict[str, Any]) -> StreamingResponse:
    """An event stream holding just one frame."""

    async def one() -> AsyncIterator[bytes]:
        yield encode_event(payload)

    return StreamingResponse(one(), media_type="text/event-stream", headers=SSE_HEADERS)
