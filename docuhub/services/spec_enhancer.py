"""AI enhancement of OpenAPI specs through LiteLLM.

The model receives the current spec and must return the complete spec
with better summaries, descriptions and examples. Responses are cleaned
of markdown fences and repaired with ``json_repair`` before parsing. The
result must keep every original operation; anything else is rejected as
an upstream failure so a bad completion can never drop endpoints.
"""

import json
import logging
import re
from typing import Any, Optional

from ..core.config import settings
from ..exceptions import UpstreamError

logger = logging.getLogger(__name__)

PROVIDER = "ai"

SYSTEM_PROMPT = (
    "You are a software architect and OpenAPI 3.0 documentation specialist. "
    "Improve the given OpenAPI document: write clear summaries and descriptions in active voice, "
    "add realistic request and response examples, and document the usual error responses "
    "(400, 401, 404). Never remove or rename paths, methods or schemas. "
    "Respond ONLY with the complete JSON document. No markdown, no commentary."
)

# Upper bound on the serialized spec sent in one prompt.
MAX_SPEC_CHARS = 60_000

_FENCE_START = re.compile(r"^```(?:json)?\s*\n?")
_FENCE_END = re.compile(r"\n?```\s*$")


class SpecEnhancer:
    """``enhance_spec(spec) -> spec`` backed by a LiteLLM model."""

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None,
                 api_base: Optional[str] = None, timeout: Optional[int] = None):
        self.model = model if model is not None else settings.ai_model
        self.api_key = api_key if api_key is not None else settings.ai_api_key
        self.api_base = api_base if api_base is not None else settings.ai_api_base
        self.timeout = timeout or settings.ai_timeout

    def is_configured(self) -> bool:
        return bool(self.model)

    def enhance_spec(self, spec: dict[str, Any]) -> dict[str, Any]:
        """Return an enhanced copy of *spec*.

        Raises:
            UpstreamError: not configured, provider failure, or an unusable response.
        """
        if not self.is_configured():
            raise UpstreamError(PROVIDER, "AI enhancement is not configured (set AI_MODEL)")

        spec_json = json.dumps(spec, ensure_ascii=False)
        if len(spec_json) > MAX_SPEC_CHARS:
            raise UpstreamError(PROVIDER, f"Spec too large to enhance ({len(spec_json)} characters)")

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"OpenAPI document:\n\n{spec_json}"},
        ]
        raw = self._complete(messages)
        enhanced = parse_json_response(raw)
        missing = missing_operations(spec, enhanced)
        if missing:
            logger.warning("Enhanced spec dropped operations", extra={"missing": missing[:10]})
            raise UpstreamError(PROVIDER, f"Enhanced spec is missing {len(missing)} operation(s)")
        return enhanced

    def _complete(self, messages: list[dict[str, str]]) -> str:
        try:
            import litellm

            kwargs: dict = {
                "model": self.model,
                "messages": messages,
                "temperature": 0.2,
                "timeout": self.timeout,
            }
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.api_base:
                kwargs["api_base"] = self.api_base

            response = litellm.completion(**kwargs)
            content = response.choices[0].message.content
        except Exception as e:
            logger.exception("Spec enhancement completion failed")
            raise UpstreamError(PROVIDER, f"Completion failed: {type(e).__name__}") from e

        if not content:
            raise UpstreamError(PROVIDER, "Empty completion")
        return content


def parse_json_response(raw: str) -> dict[str, Any]:
    """Parse a model reply that should be a JSON object, tolerating fences and small syntax slips."""
    from json_repair import repair_json

    text = _FENCE_END.sub("", _FENCE_START.sub("", raw.strip()))
    try:
        parsed = json.loads(repair_json(text))
    except json.JSONDecodeError as e:
        raise UpstreamError(PROVIDER, f"Response is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise UpstreamError(PROVIDER, "Response is not a JSON object")
    return parsed


def missing_operations(original: dict[str, Any], enhanced: dict[str, Any]) -> list[str]:
    """``"METHOD /path"`` for every operation in *original* absent from *enhanced*."""
    enhanced_paths = enhanced.get("paths") or {}
    missing = []
    for path, methods in (original.get("paths") or {}).items():
        if not isinstance(methods, dict):
            continue
        for method in methods:
            if method not in (enhanced_paths.get(path) or {}):
                missing.append(f"{method.upper()} {path}")
    return missing
