"""
Plain-text rendering of a LoadState for the console consumer.
"""

import json

from .state import Empty, Failed, Idle, Loading, LoadState, Success


def render_state(state: LoadState, source_url: str = None) -> str:
    if isinstance(state, Idle):
        return "Waiting to fetch data..."

    if isinstance(state, Loading):
        return "Fetching data..."

    if isinstance(state, Failed):
        return f"Error: {state.message}"

    lines = []
    if state.degraded:
        lines.append(f"Showing fallback data ({state.reason})")

    if isinstance(state, Empty):
        lines.append("No data found")
        return "\n".join(lines)

    if isinstance(state, Success):
        if source_url and not state.degraded:
            lines.append(f"Data fetched successfully from: {source_url}")
        lines.append(f"Showing {state.count} of {state.total} items")
        lines.append(json.dumps(list(state.items), indent=2, ensure_ascii=False))
        return "\n".join(lines)

    raise TypeError(f"Unknown load state: {state!r}")
