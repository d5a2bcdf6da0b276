"""Errors raised by the stage, capture and generation layers."""


class FiboBridgeError(Exception):
    """Base class for all Fibo Bridge errors."""


class GenerationError(FiboBridgeError):
    """A generation attempt failed; shown to the user."""


class MissingCredential(GenerationError):
    """No API key was provided for the selected engine."""

    def __init__(self, engine: str | None = None) -> None:
        name = f"{engine} " if engine else ""
        super().__init__(f"{name}API Key is required.")


class GenerationInProgress(GenerationError):
    """Another generation is still outstanding."""

    def __init__(self) -> None:
        super().__init__("A generation is already in progress.")


class CaptureNotReady(GenerationError):
    """The renderer has no frame to capture yet."""

    def __init__(self) -> None:
        super().__init__("Renderer is not ready; no frame to capture.")


class TransportError(GenerationError):
    """The engine answered with a non-success response."""

    def __init__(self, engine: str, status: int | None, body: str) -> None:
        self.engine = engine
        self.status = status
        self.body = body
        super().__init__(f"{engine} API Error: {status} - {body}")


class EmptyResult(GenerationError):
    """The engine answered successfully but returned no image."""

    def __init__(self, engine: str) -> None:
        self.engine = engine
        super().__init__(f"No image returned from {engine}")


class AssetLoadError(FiboBridgeError):
    """A subject model could not be fetched or parsed."""
