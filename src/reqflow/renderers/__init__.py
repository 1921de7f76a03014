from reqflow.renderers.base import Renderer
from reqflow.renderers.reactflow import ReactFlowRenderer

__all__ = ["ReactFlowRenderer", "Renderer"]
