"""Vision-model collaborators that turn a report scan into a JSON payload.

Two backends are available:

- OpenRouter chat completions over plain ``requests`` (default)
- OpenAI chat completions through the official SDK

Both expose ``recognize(document) -> Optional[dict]`` and make exactly one
model call per document. They log and return None on failure; turning that
into an error is the adapter's job.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import httpx
import requests
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from ..config import (
    load_backend,
    load_openai,
    load_openai_base_url,
    load_openai_model,
    load_openrouter,
    load_openrouter_model,
)
from ..logging import get_logger
from .documents import ScanDocument

LOG = get_logger("extraction-recognizers")


class Recognizer(Protocol):
    def recognize(self, document: ScanDocument) -> Optional[Dict[str, Any]]:
        ...


def _prompt() -> str:
    return """
## Task
You are given a photo of an aircraft Post Flight Report (PFR), usually a thermal
paper printout from the cockpit printer. Extract the report header and every
fault and failure message it lists.

## Output (strict)
Return ONLY a JSON object (no code fences, no commentary) with these keys:
- aircraftId: string, aircraft registration or tail number as printed (e.g. "D-AIZA")
- date: string, the flight date as printed
- flightNumber: string, e.g. "DLH4AB"
- cityPair: string, origin and destination, e.g. "EDDF-LEPA"
- faults: array of { "time": string, "phase": string, "ata": string, "description": string }
- failures: array of { "time": string, "source": string, "identifier": string, "description": string }
- rawText: string, the full transcription of the printout, line order preserved

## Rules
- Copy values exactly as printed; do not translate or expand abbreviations.
- "ata" is the ATA chapter reference printed next to the fault (e.g. "21-31-00").
- "phase" is the flight phase code printed next to the fault (e.g. "02", "CRZ").
- Fault messages come from the "FAULTS" / "WARNING" section; failure messages come
  from the "FAILURE MESSAGES" section with their source system and identifier.
- Use empty strings for values you cannot read and empty arrays when a section
  is absent. Never invent entries.
"""


def _scavenge_json_block(s: str) -> Optional[Any]:
    if not s:
        return None

    candidates: List[str] = []

    fenced = re.search(r"```(?:json)?\s*(.*?)```", s, re.DOTALL)
    if fenced and fenced.group(1):
        candidates.append(fenced.group(1).strip())

    start_obj = s.find("{")
    end_obj = s.rfind("}")
    if start_obj != -1 and end_obj != -1 and end_obj > start_obj:
        candidates.append(s[start_obj : end_obj + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError:
            continue

    return None


def _parse_model_text(text: Optional[str], *, model_name: str) -> Optional[Any]:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        LOG.debug(f"JSON parse failed for model={model_name}; attempting fallback (first 500 chars: {text[:500]!r})")
        return _scavenge_json_block(text)


def _openrouter_content_node(document: ScanDocument) -> Dict[str, Any]:
    if not document.is_pdf:
        return {"type": "image_url", "image_url": {"url": document.data_url()}}
    return {
        "type": "file",
        "file": {
            "filename": document.name or "report.pdf",
            "file_data": document.data_url(),
        },
    }


@dataclass(frozen=True)
class OpenRouterConfig:
    """Configuration set required to talk to the OpenRouter API."""

    api_key: str
    model_name: str
    temperature: float = 0.0
    max_tokens: int = 4000
    timeout_seconds: int = 120
    pdf_engine: str = "pdf-text"


class OpenRouterRecognizer:
    """Thin wrapper around the OpenRouter chat completions endpoint."""

    ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"

    def __init__(self, config: OpenRouterConfig, *, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.session = session or requests.Session()

    def _payload(self, document: ScanDocument) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.config.model_name,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": _prompt()},
                        _openrouter_content_node(document),
                    ],
                }
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        if document.is_pdf and self.config.pdf_engine:
            payload["plugins"] = [{"id": "file-parser", "pdf": {"engine": self.config.pdf_engine}}]
        return payload

    def recognize(self, document: ScanDocument) -> Optional[Dict[str, Any]]:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        LOG.info(f"Calling OpenRouter model={self.config.model_name} for {document.name}")
        try:
            resp = self.session.post(
                self.ENDPOINT,
                headers=headers,
                json=self._payload(document),
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as exc:
            LOG.error(f"OpenRouter request failed: {exc}")
            return None

        if resp.status_code >= 400:
            LOG.error(f"OpenRouter HTTP {resp.status_code}: {resp.text[:500]}")
            return None

        try:
            body = resp.json()
        except ValueError:
            LOG.error(f"OpenRouter returned a non-JSON body: {resp.text[:500]!r}")
            return None
        choices = body.get("choices") if isinstance(body, dict) else None
        if not choices:
            LOG.error(f"OpenRouter returned no choices: {body}")
            return None
        message = choices[0].get("message") or {}
        parsed = _parse_model_text(message.get("content"), model_name=self.config.model_name)
        if not isinstance(parsed, dict):
            LOG.error("OpenRouter output is not a JSON object")
            return None
        return parsed


class OpenAIRecognizer:
    """Chat completions (vision) through the OpenAI SDK in JSON object mode."""

    def __init__(
        self,
        api_key: str,
        *,
        model_name: str,
        base_url: Optional[str] = None,
        timeout_seconds: float = 120.0,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        if client is None:
            http_client = httpx.Client(
                timeout=httpx.Timeout(connect=10.0, read=timeout_seconds, write=30.0, pool=10.0),
            )
            # Retries belong to the caller, not to the SDK.
            client = OpenAI(api_key=api_key, base_url=base_url, http_client=http_client, max_retries=0)
        self.client = client

    def recognize(self, document: ScanDocument) -> Optional[Dict[str, Any]]:
        if document.is_pdf:
            LOG.error(f"OpenAI backend does not accept PDF scans; skipping {document.name}")
            return None
        messages = [
            {
                "role": "system",
                "content": "You are a strict JSON generator. Output ONLY a single JSON object.",
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": _prompt()},
                    {"type": "image_url", "image_url": {"url": document.data_url()}},
                ],
            },
        ]
        LOG.info(f"Calling OpenAI model={self.model_name} for {document.name}")
        try:
            completion = self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                response_format={"type": "json_object"},
                timeout=self.timeout_seconds,
            )
        except (APIConnectionError, APITimeoutError) as e:
            LOG.error(f"Network/timeout while calling OpenAI: {e}")
            return None
        except APIStatusError as e:
            body = getattr(getattr(e, "response", None), "text", None)
            preview = body[:300] if body else None
            LOG.error(f"OpenAI API returned {getattr(e, 'status_code', '?')}. Body preview: {preview!r}")
            return None

        choice = completion.choices[0] if getattr(completion, "choices", None) else None
        text = choice.message.content if choice and getattr(choice, "message", None) else None
        usage = getattr(completion, "usage", None)
        LOG.debug(f"Chat completion id={getattr(completion, 'id', None)} total_tokens={getattr(usage, 'total_tokens', None)}")
        parsed = _parse_model_text(text, model_name=self.model_name)
        if not isinstance(parsed, dict):
            LOG.error("OpenAI output is not a JSON object")
            return None
        return parsed


def build_recognizer(script_dir: str, *, backend: Optional[str] = None) -> Recognizer:
    """Create the configured recognizer. Raises RuntimeError if the key is missing."""
    chosen = (backend or load_backend(script_dir)).strip().lower()
    if chosen == "openai":
        api_key = load_openai(script_dir)
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY missing in env/.env; cannot run extraction")
        model = load_openai_model(script_dir)
        LOG.info(f"Recognition backend: OpenAI (model={model})")
        return OpenAIRecognizer(api_key, model_name=model, base_url=load_openai_base_url(script_dir))

    api_key = load_openrouter(script_dir)
    if not api_key:
        raise RuntimeError("OPENROUTER_API_KEY missing in env/.env; cannot run extraction")
    model = load_openrouter_model(script_dir)
    LOG.info(f"Recognition backend: OpenRouter (model={model})")
    return OpenRouterRecognizer(OpenRouterConfig(api_key=api_key, model_name=model))
