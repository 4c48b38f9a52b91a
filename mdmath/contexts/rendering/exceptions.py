"""Exceptions raised by the render pipeline. Messages travel to the client verbatim."""


class RenderError(Exception):
    """Base class for per-request failures converted to error frames."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EmptyEquationError(RenderError):
    """Raised for blank equations before any cache or typesetter work."""

    def __init__(self):
        super().__init__("Empty equation")


class TypesettingError(RenderError):
    """Malformed LaTeX reported by the typesetter. The outcome is cached."""

    pass


class ToolingError(RenderError):
    """Typesetter tooling failed. Never cached; a retry runs the tools again."""

    pass


class RasterizerError(ToolingError):
    """rsvg-convert, Pillow or the output write failed."""

    pass


class InvalidRequestError(RenderError):
    """A render request is missing a field or carries one of the wrong type."""

    pass


class WorkspaceError(Exception):
    """
    Exception raised when the private workspace directory cannot be created.

    Startup error: the server exits before serving any request.
    """

    pass
