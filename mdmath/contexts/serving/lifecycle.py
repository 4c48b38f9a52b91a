"""
Workspace lifecycle.

The workspace is a private, randomly suffixed directory holding every image
this process produces. It is created at startup and, on normal exit or
SIGTERM/SIGHUP, emptied of every produced file and removed. Cleanup is
best-effort: nothing survives a SIGKILL.
"""

import atexit
import os
import secrets
import signal
import tempfile
import threading
from pathlib import Path
from typing import Iterable, Optional

from dotenv import load_dotenv

from mdmath.contexts.rendering import RenderCache, WorkspaceError
from mdmath.contexts.serving.logger import _log_debug, log_cleanup

load_dotenv()

WORKSPACE_ROOT = Path(os.getenv("MDMATH_WORKSPACE_ROOT", tempfile.gettempdir()))
WORKSPACE_PREFIX = "mdmath-"

# Signals that trigger cleanup before the process exits
CLEANUP_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if sig
)


class Workspace:
    """Per-process output directory: <root>/mdmath-<6 hex chars>."""

    def __init__(self, root: Path = WORKSPACE_ROOT, suffix: Optional[str] = None):
        # Random suffix keeps concurrent server instances apart
        suffix = suffix or secrets.token_hex(3)
        self.path = Path(root) / f"{WORKSPACE_PREFIX}{suffix}"

    def create(self) -> Path:
        """
        Create the directory; an existing directory is fine.

        Raises:
            WorkspaceError: On any other failure
        """
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Cannot create workspace {self.path}: {e}") from e
        return self.path


class LifecycleManager:
    """Creates the workspace and removes everything in it when the process ends."""

    def __init__(self, workspace: Workspace, cache: Optional[RenderCache] = None):
        self.workspace = workspace
        self.cache = cache
        self._cleaned = False
        self._lock = threading.Lock()

    def start(self) -> Path:
        return self.workspace.create()

    def attach(self, cache: RenderCache) -> None:
        """Set the cache whose produced images are deleted at exit."""
        self.cache = cache

    def install(self, signals: Iterable[int] = CLEANUP_SIGNALS) -> None:
        """Register the exit hook and signal handlers."""
        atexit.register(self.cleanup)
        for sig in signals:
            signal.signal(sig, self._on_signal)

    def _on_signal(self, signum, frame) -> None:
        _log_debug(f"Received signal {signum}")
        self.cleanup()
        raise SystemExit(128 + signum)

    def cleanup(self) -> None:
        """Delete every produced image, then the workspace. Runs once."""
        with self._lock:
            if self._cleaned:
                return
            self._cleaned = True

        produced = self.cache.produced() if self.cache is not None else []
        # The same file can back several cache entries
        filenames = list(dict.fromkeys(rendered.filename for rendered in produced))

        removed = failed = 0
        for filename in filenames:
            try:
                Path(filename).unlink()
                removed += 1
            except OSError:
                failed += 1

        try:
            self.workspace.path.rmdir()
            workspace_removed = True
        except OSError:
            workspace_removed = False

        log_cleanup(removed, failed, self.workspace.path, workspace_removed)
