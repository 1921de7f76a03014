"""Base renderer protocol."""

from __future__ import annotations

from typing import Any, Protocol

from reqflow.types import FlowResult


class Renderer(Protocol):
    """Protocol that all renderers must implement."""

    def render(self, result: FlowResult) -> Any:
        """Render a laid-out flow into the shape a display shell consumes."""
        ...
