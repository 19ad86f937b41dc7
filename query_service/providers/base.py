"""Base classes for inference sessions.

Defines the InferenceSession ABC that the RequestSerializer drives. A session
wraps exactly one loaded model context and is NOT safe for concurrent use:
callers must never have two respond() calls in flight at once.

Patterns applied:
- ABC with @abstractmethod decorator
- Dataclass for metadata
- Context manager for load/unload
- PEP 604 union syntax (X | None)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class SessionMetadata:
    """Static and runtime information about a session.

    Attributes:
        model_id: Model identifier (file stem for local models).
        context_length: Context window in tokens.
        turns: Number of completed user/assistant exchanges held in history.
        status: "available" before load, "loaded" afterwards.
        model_path: Path to the model file (for local models).
    """

    model_id: str
    context_length: int
    turns: int = 0
    status: str = "available"
    model_path: str | None = None


class InferenceSession(ABC):
    """Abstract base class for a single, stateful model session.

    This is the "port" side of the adapter: the serializer only knows about
    respond(), and concrete sessions (LlamaCppSession, test stubs) supply it.

    Example:
        class EchoSession(InferenceSession):
            def respond(self, prompt):
                return prompt
    """

    @property
    @abstractmethod
    def session_info(self) -> SessionMetadata:
        """Get session metadata."""
        ...

    @property
    @abstractmethod
    def is_loaded(self) -> bool:
        """Check if the model is loaded and ready to respond."""
        ...

    @abstractmethod
    def respond(self, prompt: str) -> str:
        """Generate an answer for one prompt.

        Blocking, with unbounded duration. Single-shot: no retries.

        Args:
            prompt: Query text.

        Returns:
            Generated answer text.

        Raises:
            InferenceError: If the model is not loaded or generation fails.
        """
        ...

    def load(self) -> None:  # noqa: B027
        """Load the model into memory.

        Default implementation does nothing (for sessions that load on init).
        """

    def unload(self) -> None:  # noqa: B027
        """Release the model.

        Default implementation does nothing.
        """

    def __enter__(self) -> InferenceSession:
        self.load()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.unload()
