"""
Serving Context

Responsibilities:
- Decodes request lines and frames responses on stdout
- Dispatches render requests as concurrent tasks and applies scale updates
- Creates the private workspace and removes it with its images at exit

Owns: Wire protocol, RequestDispatcher, LifecycleManager, the server loop
Never: Typesets, sizes or rasterizes equations itself
"""

from mdmath.contexts.serving.dispatcher import RequestDispatcher
from mdmath.contexts.serving.lifecycle import LifecycleManager, Workspace
from mdmath.contexts.serving.protocol import ResponseWriter, decode_line, frame_error, frame_image
from mdmath.contexts.serving.server import build_service, run_server, serve

__all__ = [
    "RequestDispatcher",
    "LifecycleManager",
    "Workspace",
    "ResponseWriter",
    "decode_line",
    "frame_image",
    "frame_error",
    "build_service",
    "run_server",
    "serve",
]
