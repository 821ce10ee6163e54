"""Workflow Stream Helpers — run a workflow detached from the request and relay it as SSE.

Invariants:
    - The workflow runs in its own task: a client disconnect stops the relay, never
      the workflow (a transfer or claim in flight always finishes)
    - Every relayed stream ends with the workflow's terminal event, or an internal
      error event if the workflow itself crashed
    - Detached tasks are referenced until done so they are not garbage-collected

Design Decisions:
    - asyncio.Queue between task and response: the route stays a thin relay
    - SSE headers prevent proxy/browser buffering of streamed events
"""

import asyncio
import json
import logging
from typing import AsyncIterator

from fastapi.responses import StreamingResponse

from neuronkeeper.core.errors import ErrorSeverity, RecoveryAction
from neuronkeeper.core.workflow_events import WorkflowEvent

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}

_INTERNAL_ERROR_EVENT = {
    "type": "error",
    "data": {
        "code": "INTERNAL_ERROR",
        "message": "An unexpected error occurred",
        "severity": ErrorSeverity.CRITICAL.value,
        "recovery": RecoveryAction.MANUAL_RECONCILIATION.value,
        "step": None,
    },
}

_running: set[asyncio.Task] = set()


def sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


async def _drive(events: AsyncIterator[WorkflowEvent], queue: asyncio.Queue) -> None:
    try:
        async for event in events:
            await queue.put(event.to_sse_event())
    except Exception:
        logger.error("Workflow crashed", exc_info=True)
        await queue.put(_INTERNAL_ERROR_EVENT)
    finally:
        await queue.put(None)


def stream_workflow(events: AsyncIterator[WorkflowEvent], label: str) -> StreamingResponse:
    """Start the workflow now and return a response relaying its events."""
    queue: asyncio.Queue = asyncio.Queue()
    task = asyncio.create_task(_drive(events, queue))
    _running.add(task)
    task.add_done_callback(_running.discard)

    async def event_generator():
        try:
            while True:
                event = await queue.get()
                if event is None:
                    return
                yield sse_line(event)
        except asyncio.CancelledError:
            logger.info("Client disconnected from %s stream; workflow continues", label)
            return

    return StreamingResponse(
        event_generator(), media_type="text/event-stream", headers=SSE_HEADERS,
    )
