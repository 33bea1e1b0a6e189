"""JSON output instructions and validation for schema-bound LLM agents."""

from __future__ import annotations

import json
import re
from typing import Optional

from pydantic import BaseModel, ValidationError

from agentflow.errors import OutputValidationError

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_DECODER = json.JSONDecoder()


def json_output_instructions(schema: type[BaseModel]) -> str:
    """Describe the JSON object a reply must consist of."""
    json_schema = schema.model_json_schema()
    required = json_schema.get("required") or []
    lines = [
        "Respond with a single JSON object matching this JSON schema:",
        json.dumps(json_schema, sort_keys=True),
        f"Required fields: {', '.join(required) if required else 'none'}",
        "Do not include any text before or after the JSON object.",
    ]
    return "\n".join(lines)


def extract_json(text: str) -> Optional[str]:
    """Return the first JSON object embedded in ``text``, fenced or bare."""
    fenced = _FENCE.search(text)
    candidates = [fenced.group(1), text] if fenced else [text]
    for candidate in candidates:
        start = candidate.find("{")
        while start != -1:
            try:
                _, end = _DECODER.raw_decode(candidate, start)
            except json.JSONDecodeError:
                start = candidate.find("{", start + 1)
                continue
            return candidate[start:end]
    return None


def parse_structured_output(text: str, schema: type[BaseModel], *, agent_name: str) -> BaseModel:
    """Validate a final answer against ``schema``.

    Raises:
        OutputValidationError: If no JSON object is found or it fails validation
    """
    payload = extract_json(text)
    if payload is None:
        raise OutputValidationError(agent_name, schema.__name__, text, reason="invalid_json")
    try:
        return schema.model_validate_json(payload)
    except ValidationError as exc:
        raise OutputValidationError(
            agent_name,
            schema.__name__,
            text,
            reason="schema_validation_failed",
            errors=exc.errors(include_url=False, include_context=False),
        ) from exc


__all__ = ["extract_json", "json_output_instructions", "parse_structured_output"]
