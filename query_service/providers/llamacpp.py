"""LlamaCpp-based inference session.

Holds one llama-cpp-python model context and one chat history for the whole
process lifetime. Every answer is generated against the accumulated
conversation, so the history is the mutable state that must never see two
prompts at once.

Patterns applied:
- InferenceSession ABC implementation
- Exception classes ending in "Error"
- No mutable default arguments
- PEP 604 union syntax (X | None)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from query_service.core.constants import (
    DEFAULT_CONTEXT_LENGTH,
    DEFAULT_MAX_HISTORY_TURNS,
)
from query_service.core.exceptions import (
    ConfigurationError,
    InferenceError,
    ModelNotFoundError,
    SessionLoadError,
)
from query_service.core.logging import get_logger
from query_service.providers.base import InferenceSession, SessionMetadata


# Import Llama at module level for easier mocking in tests.
# llama-cpp-python is an optional extra; load() reports its absence.
try:
    from llama_cpp import Llama
except ImportError:
    Llama = None  # type: ignore[misc, assignment]

if TYPE_CHECKING:
    from llama_cpp import Llama as LlamaType


# =============================================================================
# Constants
# =============================================================================

STATUS_AVAILABLE = "available"
STATUS_LOADED = "loaded"
ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

logger = get_logger(__name__)


class LlamaCppSession(InferenceSession):
    """Chat session over a GGUF model loaded with llama-cpp-python.

    Args:
        model_path: Path to the GGUF model file.
        context_length: Maximum context window in tokens.
        n_gpu_layers: Number of layers to offload to GPU (-1 for all).
        system_prompt: Optional system message kept at the head of history.
        max_history_turns: Completed exchanges retained between prompts.
            Oldest exchanges are dropped first; 0 keeps none.

    Raises:
        ModelNotFoundError: If the model file does not exist.
        ConfigurationError: If the model path is not a regular file.

    Example:
        >>> session = LlamaCppSession(Path("/models/mistral-7b.Q6_K.gguf"))
        >>> with session:
        ...     answer = session.respond("Why is the sky blue?")
    """

    def __init__(
        self,
        model_path: Path | str,
        context_length: int = DEFAULT_CONTEXT_LENGTH,
        n_gpu_layers: int = 0,
        system_prompt: str | None = None,
        max_history_turns: int = DEFAULT_MAX_HISTORY_TURNS,
    ) -> None:
        self._model_path = Path(model_path)
        self._model_id = self._model_path.stem
        self._context_length = context_length
        self._n_gpu_layers = n_gpu_layers
        self._system_prompt = system_prompt
        self._max_history_turns = max_history_turns

        self._model: LlamaType | None = None
        self._is_loaded = False
        self._history: list[dict[str, str]] = []

        if not self._model_path.exists():
            raise ModelNotFoundError(
                f"Model file not found: {self._model_path}",
                model_path=str(self._model_path),
            )
        if not self._model_path.is_file():
            raise ConfigurationError(
                f"Model path is not a file: {self._model_path}",
                setting="model_path",
            )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def session_info(self) -> SessionMetadata:
        status = STATUS_LOADED if self._is_loaded else STATUS_AVAILABLE
        return SessionMetadata(
            model_id=self._model_id,
            context_length=self._context_length,
            turns=self.turns,
            status=status,
            model_path=str(self._model_path),
        )

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    @property
    def turns(self) -> int:
        """Number of completed exchanges currently held in history."""
        return sum(1 for message in self._history if message["role"] == ROLE_ASSISTANT)

    @property
    def history(self) -> list[dict[str, str]]:
        """Copy of the chat history, without the system prompt."""
        return [dict(message) for message in self._history]

    # =========================================================================
    # Load / Unload
    # =========================================================================

    def load(self) -> None:
        """Load the model into memory. Idempotent.

        Raises:
            SessionLoadError: If llama-cpp-python is missing or loading fails.
        """
        if self._is_loaded:
            return

        if Llama is None:
            raise SessionLoadError(
                "llama-cpp-python is not installed. "
                "Install with: pip install 'llm-query-service[llama]'",
                model_path=str(self._model_path),
            )

        try:
            self._model = Llama(
                model_path=str(self._model_path),
                n_ctx=self._context_length,
                n_gpu_layers=self._n_gpu_layers,
                verbose=False,
            )
        except Exception as e:
            raise SessionLoadError(
                f"Failed to load model {self._model_id}: {e}",
                model_path=str(self._model_path),
            ) from e

        self._is_loaded = True
        logger.info(
            "session_loaded",
            model_id=self._model_id,
            context_length=self._context_length,
            n_gpu_layers=self._n_gpu_layers,
        )

    def unload(self) -> None:
        """Drop the model reference and the conversation."""
        self._model = None
        self._is_loaded = False
        self._history.clear()

    def reset(self) -> None:
        """Forget the conversation, keeping the model loaded."""
        self._history.clear()

    # =========================================================================
    # Generation
    # =========================================================================

    def respond(self, prompt: str) -> str:
        """Answer one prompt in the context of the conversation so far.

        The user turn is only kept if generation succeeds, so a failed
        prompt leaves the history exactly as it was.

        Raises:
            InferenceError: If the model is not loaded or generation fails.
        """
        if not self._is_loaded or self._model is None:
            raise InferenceError(
                f"Model {self._model_id} is not loaded. Call load() first."
            )

        self._history.append({"role": ROLE_USER, "content": prompt})
        try:
            result = self._model.create_chat_completion(
                messages=self._build_messages(),  # type: ignore[arg-type]
            )
            answer = self._extract_answer(result)  # type: ignore[arg-type]
        except Exception as e:
            self._history.pop()
            raise InferenceError(
                f"Generation failed for {self._model_id}: {e}"
            ) from e

        self._history.append({"role": ROLE_ASSISTANT, "content": answer})
        self._trim_history()
        return answer

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _build_messages(self) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if self._system_prompt:
            messages.append({"role": ROLE_SYSTEM, "content": self._system_prompt})
        messages.extend(self._history)
        return messages

    def _extract_answer(self, result: dict[str, Any]) -> str:
        choices = result.get("choices") or []
        if not choices:
            raise ValueError("completion returned no choices")
        content = choices[0].get("message", {}).get("content")
        if content is None:
            raise ValueError("completion returned no content")
        return content.strip()

    def _trim_history(self) -> None:
        # History alternates user/assistant, so one exchange is two messages
        excess = len(self._history) - 2 * self._max_history_turns
        if excess > 0:
            del self._history[:excess]
