"""
Provider-agnostic LLM client for notebrief.

Supports Google Gemini (default), Anthropic, and OpenAI with a shared
text-generation interface. Notes are personal content, so the Gemini
safety thresholds are set to the most permissive level.
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import LLMConfig
from .errors import UpstreamError

logger = logging.getLogger("notebrief.common.llm_client")

GEMINI_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]


class LLMClient:
    """Unified text generation client across LLM providers."""

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        google_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model
        self._client = None

        if self.provider == "google":
            if not google_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import google.generativeai as genai

                genai.configure(api_key=google_api_key)
                self._client = genai  # module; models are built per call
            except ImportError:
                logger.warning("google-generativeai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Gemini client: %s", e)
            return

        if self.provider == "anthropic":
            if not anthropic_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import anthropic

                self._client = anthropic.Anthropic(api_key=anthropic_api_key)
            except ImportError:
                logger.warning("anthropic package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client: %s", e)
            return

        if self.provider == "openai":
            if not openai_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                from openai import OpenAI

                self._client = OpenAI(api_key=openai_api_key)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client: %s", e)
            return

        logger.warning("Unsupported LLM provider: %s", self.provider)

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMClient":
        models = {
            "google": config.google_model,
            "anthropic": config.anthropic_model,
            "openai": config.openai_model,
        }
        provider = (config.provider or "google").lower()
        return cls(
            provider=provider,
            model=models.get(provider, ""),
            google_api_key=config.google_api_key or None,
            anthropic_api_key=config.anthropic_api_key or None,
            openai_api_key=config.openai_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        timeout: float = 60.0,
    ) -> str:
        """Generate text for a single-turn prompt.

        Raises:
            RuntimeError: No provider client is configured
            UpstreamError: The provider call failed or returned no text
        """
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        try:
            text = self._generate(prompt, temperature, max_tokens, timeout)
        except UpstreamError:
            raise
        except Exception as e:
            status = getattr(e, "code", None) or getattr(e, "status_code", None)
            raise UpstreamError(
                f"{self.provider} generation failed: {e}",
                status_code=status if isinstance(status, int) else None,
            ) from e

        if not text:
            raise UpstreamError(f"{self.provider} returned an empty response")
        return text

    def _generate(self, prompt: str, temperature: float, max_tokens: int, timeout: float) -> str:
        if self.provider == "google":
            model = self._client.GenerativeModel(model_name=self.model)
            response = model.generate_content(
                prompt,
                generation_config={
                    "temperature": temperature,
                    "max_output_tokens": max_tokens,
                },
                safety_settings=GEMINI_SAFETY_SETTINGS,
                request_options={"timeout": timeout},
            )
            if not response.candidates:
                raise UpstreamError("gemini returned no candidates")
            return response.text.strip()

        if self.provider == "anthropic":
            response = self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                timeout=timeout,
            )
            return response.content[0].text.strip()

        if self.provider == "openai":
            response = self._client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                timeout=timeout,
            )
            return (response.choices[0].message.content or "").strip()

        raise RuntimeError(f"Unsupported LLM provider: {self.provider}")
