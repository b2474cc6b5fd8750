"""JSON encoding of analysis results."""

from __future__ import annotations

import json
from typing import Optional

from .exceptions import GitnappedError
from .models import AnalysisResult


def result_to_json(result: AnalysisResult, indent: Optional[int] = 2) -> str:
    """Serialize a result; every counter is written as a JSON integer."""
    return json.dumps(result.to_dict(), indent=indent, ensure_ascii=False)


def result_from_json(text: str) -> AnalysisResult:
    """Rebuild a result from :func:`result_to_json` output.

    Raises:
        GitnappedError: If the document is not a serialized result
    """
    try:
        payload = json.loads(text)
        return AnalysisResult.from_dict(payload)
    except (ValueError, KeyError, TypeError) as exc:
        raise GitnappedError(f"Invalid analysis result document: {exc}") from exc
