"""AI distillation collaborator: raw manager text -> ordered checklist + title.

The engine never calls this itself. Use cases call it once per "distill" request and
return the preview; task creation is a separate call that receives the steps.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from google import genai
from google.genai import types

from ..config import settings
from ..domain_errors import DomainError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Task"

SYSTEM_PROMPT = """
You turn raw, messy or vernacular (including Hinglish) task descriptions written by a
manager into a short checklist that a field worker can follow.

RULES:
1. Produce 3-5 short steps.
2. Start every step with a strong action verb (Go, Bring, Call, Upload, Clean, Fix).
3. Keep the core intent of slang or mixed-language input, phrased simply and professionally.
4. When a photo or proof is mentioned, make "Take/Upload photo" its own step.
5. Suggest a short title of 3-5 words.
"""


@dataclass(frozen=True)
class Distillation:
    steps: list[str]
    suggested_title: str


Distiller = Callable[[str], Distillation]


def distillation_failed(message: str, **details: Any) -> DomainError:
    return DomainError(
        code="DISTILLATION_FAILED",
        http_status=502,
        message=message,
        details=details or None,
    )


def parse_distillation(payload: str | None) -> Distillation:
    """Parse the model's JSON answer; missing fields fall back to empty steps / default title."""
    try:
        data = json.loads(payload or "{}")
    except json.JSONDecodeError as exc:
        raise distillation_failed("AI response was not valid JSON") from exc
    if not isinstance(data, dict):
        raise distillation_failed("AI response has unexpected shape")

    raw_steps = data.get("steps") or []
    if not isinstance(raw_steps, list):
        raise distillation_failed("AI response has unexpected shape")
    steps = [str(step).strip() for step in raw_steps if str(step).strip()]
    title = str(data.get("suggestedTitle") or "").strip() or DEFAULT_TITLE
    return Distillation(steps=steps, suggested_title=title)


def _response_schema() -> types.Schema:
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            "steps": types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(type=types.Type.STRING),
                description="List of actionable steps starting with verbs.",
            ),
            "suggestedTitle": types.Schema(
                type=types.Type.STRING,
                description="A short 3-5 word title for the task.",
            ),
        },
        required=["steps", "suggestedTitle"],
    )


class GeminiDistiller:
    """Google Gemini backed distiller (GEMINI_API_KEY / GEMINI_MODEL)."""

    def __init__(self, api_key: str | None = None, model: str | None = None, client: Any = None):
        self.api_key = api_key or settings.GEMINI_API_KEY or ""
        self.model = model or settings.GEMINI_MODEL
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def __call__(self, raw_text: str) -> Distillation:
        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_PROMPT,
            response_mime_type="application/json",
            response_schema=_response_schema(),
        )
        try:
            response = self._get_client().models.generate_content(
                model=self.model,
                contents=raw_text,
                config=config,
            )
        except Exception as exc:
            logger.exception("Gemini distillation call failed")
            raise distillation_failed("AI distillation service is unavailable") from exc
        return parse_distillation(getattr(response, "text", None))
