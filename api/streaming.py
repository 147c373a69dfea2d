"""Server-sent event framing for streamed edit runs."""

import asyncio
import json
import logging
import threading
from collections.abc import AsyncIterator

from services import EditService, client_facing_error
from services.exceptions import InvalidRequestError
from services.models import EditRequest, ProgressEvent

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ClientDisconnected(Exception):
    """Raised in the worker thread once nobody is reading the stream."""


def format_event(name: str, payload: dict) -> str:
    return f"event: {name}\ndata: {json.dumps(payload)}\n\n"


async def stream_edit_events(svc: EditService, request: EditRequest) -> AsyncIterator[str]:
    """Run an edit in a worker thread and yield its events as they happen.

    Yields one ``progress`` event per finished requirement, then either a
    ``done`` event carrying the full response or an ``error`` event. If the
    consumer goes away, the run stops before its next requirement.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    stopped = threading.Event()

    def emit(name: str | None, payload: dict | None = None) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, (name, payload))

    def on_progress(event: ProgressEvent) -> None:
        if stopped.is_set():
            raise ClientDisconnected()
        emit("progress", event.model_dump(by_alias=True, mode="json"))

    def run() -> None:
        try:
            response = svc.run_edit(request, on_progress=on_progress)
            emit("done", response.model_dump(by_alias=True, mode="json"))
        except ClientDisconnected:
            logger.info("Client disconnected, edit run stopped early")
        except InvalidRequestError as e:
            emit("error", {"error": e.message})
        except Exception as e:
            logger.exception("Streamed edit run failed")
            emit("error", {"error": client_facing_error(e)})
        finally:
            emit(None)

    worker = loop.run_in_executor(None, run)
    try:
        while True:
            name, payload = await queue.get()
            if name is None:
                break
            yield format_event(name, payload)
    finally:
        stopped.set()
    await worker
