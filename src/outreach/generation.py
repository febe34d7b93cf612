"""Adapters for the text generation service: (system instruction, prompt) -> text."""
from __future__ import annotations

import logging
import re
import threading
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Optional

from openai import OpenAI

from outreach.config import Settings, get_settings
from outreach.errors import GenerationServiceError

LOGGER = logging.getLogger(__name__)


class TextGenerator(ABC):
    """Common contract for interacting with different generation backends."""

    name: str = "generator"

    @abstractmethod
    def generate(self, system_prompt: str, prompt: str) -> str:
        """Return free-form text for ``prompt`` under ``system_prompt``."""


class OpenAIChatGenerator(TextGenerator):
    """Chat completions through the OpenAI API."""

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        client: Any = None,
    ) -> None:
        self.name = f"openai:{model}"
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = client or OpenAI(api_key=api_key)

    def generate(self, system_prompt: str, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return (response.choices[0].message.content or "").strip()


class TransformersTextGenerator(TextGenerator):
    """Local causal language model loaded lazily through HuggingFace transformers."""

    def __init__(
        self,
        model_path: str,
        *,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        device: str | None = None,
    ) -> None:
        self.name = f"transformers:{model_path}"
        self.model_path = model_path
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.device = device
        self._model: Any = None
        self._tokenizer: Any = None
        self._lock = threading.Lock()

    def _ensure_loaded(self) -> None:
        with self._lock:
            if self._model is not None:
                return
            from transformers import AutoModelForCausalLM, AutoTokenizer

            LOGGER.info("Loading local generation model %s", self.model_path)
            tokenizer = AutoTokenizer.from_pretrained(self.model_path)
            if tokenizer.pad_token_id is None and tokenizer.eos_token_id is not None:
                tokenizer.pad_token_id = tokenizer.eos_token_id
            model = AutoModelForCausalLM.from_pretrained(self.model_path)
            if self.device:
                model = model.to(self.device)
            model.eval()
            self._tokenizer = tokenizer
            self._model = model

    def _render(self, system_prompt: str, prompt: str) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        if getattr(self._tokenizer, "chat_template", None):
            return self._tokenizer.apply_chat_template(messages, tokenize=False, add_generation_prompt=True)
        return f"{system_prompt.strip()}\n\n{prompt.strip()}"

    def generate(self, system_prompt: str, prompt: str) -> str:
        self._ensure_loaded()
        inputs = self._tokenizer(
            self._render(system_prompt, prompt),
            return_tensors="pt",
            truncation=True,
            max_length=getattr(self._tokenizer, "model_max_length", 4096),
        ).to(self._model.device)
        output_ids = self._model.generate(
            **inputs,
            max_new_tokens=self.max_tokens,
            temperature=max(0.0, float(self.temperature)),
            do_sample=self.temperature > 0.0,
            pad_token_id=self._tokenizer.pad_token_id,
            eos_token_id=self._tokenizer.eos_token_id,
        )
        input_length = inputs["input_ids"].shape[1]
        return self._tokenizer.decode(output_ids[0, input_length:], skip_special_tokens=True).strip()


_TARGET_RE = re.compile(r"^TARGET:\s*(?P<role>.+?)\s+at\s+(?P<company>.+)$", re.MULTILINE)
_LABEL_RE = re.compile(r"^(MY [A-Z ]+|ABOUT .+|.+ CULTURE|ADDITIONAL CONTEXT):$", re.MULTILINE)


class MockTextGenerator(TextGenerator):
    """Deterministic offline generator that echoes the prompt's structure."""

    name = "mock"

    def generate(self, system_prompt: str, prompt: str) -> str:
        del system_prompt
        target = _TARGET_RE.search(prompt)
        role = target.group("role") if target else "the role"
        company = target.group("company") if target else "your team"
        labels = _LABEL_RE.findall(prompt)
        sources = ", ".join(label.title() for label in labels) or "none"
        return "\n".join(
            [
                f"Subject: {role} at {company}",
                "",
                "Hello,",
                f"I am reaching out about the {role} opening at {company}.",
                "I would welcome a short call to discuss how I can contribute.",
                "Best regards",
                f"SOURCES USED: {sources}",
            ]
        )


def build_text_generator(settings: Optional[Settings] = None) -> TextGenerator:
    settings = settings or get_settings()
    backend = settings.generation_backend
    if backend == "mock":
        return MockTextGenerator()
    if backend == "openai":
        if not settings.openai_api_key:
            raise GenerationServiceError("OPENAI_API_KEY is required for the openai generation backend")
        return OpenAIChatGenerator(
            settings.generation_model,
            api_key=settings.openai_api_key,
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
        )
    if backend == "transformers":
        return TransformersTextGenerator(
            settings.generation_model,
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
            device=settings.embedding_device,
        )
    raise GenerationServiceError(f"Unknown generation backend: {backend}")


@lru_cache()
def get_text_generator() -> TextGenerator:
    """Return a cached text generator instance."""

    return build_text_generator()


def reset_text_generator_cache() -> None:
    """Clear the cached text generator (primarily for testing)."""

    get_text_generator.cache_clear()


__all__ = [
    "MockTextGenerator",
    "OpenAIChatGenerator",
    "TextGenerator",
    "TransformersTextGenerator",
    "build_text_generator",
    "get_text_generator",
    "reset_text_generator_cache",
]
