"""SSE parsing helper for route tests."""

import json


def sse_events(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines() if line.startswith("data: ")
    ]
