"""Document summarization through a local Ollama server.

Network and parse failures never escape ``AnalysisClient.analyze``: the caller
always gets a printable summary, falling back to a canned message that says
the document is ready for questions.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from document_analyzer.config import DEFAULT_PREFERRED_MODELS, AnalysisConfig
from document_analyzer.logger import Timer, get_logger

logger = get_logger(__name__)

DEFAULT_COMPLETION = "Document analysis completed successfully."


@dataclass(frozen=True)
class AnalysisOutcome:
    summary: str
    model: Optional[str] = None  # None for canned fallbacks


def _preview(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def build_analysis_prompt(
    text: str,
    file_name: str,
    file_type: Optional[str] = None,
    question: Optional[str] = None,
    config: Optional[AnalysisConfig] = None,
) -> str:
    """Prompt for a question about the document, or for a general overview."""
    config = config or AnalysisConfig()
    label = f"{file_name} ({file_type or 'unknown type'})"

    if question:
        return (
            "Document Analysis Request:\n\n"
            f"Document: {label}\n"
            f"Content Preview: {_preview(text, config.question_preview_chars)}\n\n"
            f"User Question: {question}\n\n"
            "Answer the user's question as completely as possible using the document content."
        )

    return (
        "Document Analysis:\n\n"
        f"Document: {label}\n"
        f"Content: {_preview(text, config.summary_preview_chars)}\n\n"
        "Analyze this document and provide:\n"
        "1. Brief summary\n"
        "2. Key points\n"
        "3. Important details\n"
        "4. Potential discussion topics"
    )


def fallback_summary(
    text: str, file_name: str, file_type: Optional[str], question: Optional[str] = None
) -> str:
    """Message shown when the model call failed."""
    summary = (
        f'Document "{file_name}" ({file_type or "unknown type"}) has been processed. '
        f"Content length: {len(text)} characters. "
    )
    if question:
        return summary + (
            f"Response to your question: {question} - "
            "Please refer to the document content for specific answers."
        )
    return summary + "Document is ready for questions and analysis."


def no_model_summary(text: str, file_name: str, file_type: Optional[str]) -> str:
    """Message shown when no model is installed at all."""
    return (
        f'Document "{file_name}" ({file_type or "unknown type"}) uploaded successfully. '
        f"Content: {_preview(text, 200)} Ready for questions."
    )


class AnalysisClient:
    """Thin synchronous client for the Ollama ``/api/tags`` and ``/api/generate`` endpoints."""

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self._http = http_client or httpx.Client(
            base_url=self.config.base_url, timeout=self.config.timeout_seconds
        )
        self._owns_http = http_client is None

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "AnalysisClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def list_models(self) -> list[str]:
        """Names of installed models; assumes the default set when the server can't say."""
        try:
            response = self._http.get("/api/tags")
            response.raise_for_status()
            models = response.json().get("models") or []
            return [model["name"] for model in models]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning(
                "Could not list Ollama models, assuming defaults",
                extra_data={"base_url": self.config.base_url, "error": str(exc)},
            )
            return list(DEFAULT_PREFERRED_MODELS)

    def select_model(self) -> Optional[str]:
        """Pinned model, else the first preferred model family that is installed."""
        if self.config.model:
            return self.config.model

        installed = self.list_models()
        for preferred in self.config.preferred_models:
            if preferred in installed:
                return preferred
            family = preferred.split(":")[0]
            for name in installed:
                if name.split(":")[0] == family:
                    return name
        return None

    def generate(
        self, prompt: str, model: str, options: Optional[dict[str, Any]] = None
    ) -> str:
        """Run one non-streaming completion.

        Raises:
            httpx.HTTPError: On transport errors, timeouts and non-2xx statuses
            ValueError: If the response body is not the expected JSON
        """
        with Timer("ollama_generate") as timer:
            response = self._http.post(
                "/api/generate",
                json={
                    "model": model,
                    "prompt": prompt,
                    "stream": False,
                    "options": options or self.config.generation_options(),
                },
            )
            response.raise_for_status()
            payload = response.json()

        completion = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(completion, str):
            raise ValueError("Ollama response has no 'response' text")

        logger.debug(
            "Ollama completion received",
            extra_data={
                "model": model,
                "characters": len(completion),
                "generate_time_ms": timer.get_elapsed_ms(),
            },
        )
        return completion.strip()

    def analyze(
        self,
        text: str,
        file_name: str,
        file_type: Optional[str] = None,
        question: Optional[str] = None,
    ) -> AnalysisOutcome:
        if not text or not text.strip():
            raise ValueError("No text content to analyze")

        model = self.select_model()
        if not model:
            logger.warning("No Ollama models available, using fallback", extra_data={"file_name": file_name})
            return AnalysisOutcome(no_model_summary(text, file_name, file_type))

        prompt = build_analysis_prompt(text, file_name, file_type, question, self.config)
        logger.info(
            "Starting document analysis",
            extra_data={"file_name": file_name, "model": model, "has_question": bool(question)},
        )

        try:
            summary = self.generate(prompt, model)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "Ollama analysis failed, using fallback",
                extra_data={
                    "file_name": file_name,
                    "model": model,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return AnalysisOutcome(fallback_summary(text, file_name, file_type, question))

        return AnalysisOutcome(summary or DEFAULT_COMPLETION, model)
