"""
Pull an AnalysisResult out of a free-form model reply.

Candidates are tried in a fixed order:
  1) the interior of the first fenced code block
  2) the first balanced {...} span
  3) the whole reply
The first candidate that validates against AnalysisResult is returned as is.
When none does, FALLBACK_RESULT is returned and marked with source "fallback".
"""
import logging
import re
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from pydantic import ValidationError

from app.models import FALLBACK_RESULT, AnalysisResult

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```[ \t]*(?:json|JSON)?[ \t]*\r?\n?(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class ParsedAnalysis:
    result: AnalysisResult
    source: str

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


def fenced_block(text: str) -> Optional[str]:
    match = FENCE_RE.search(text)
    return match.group(1).strip() if match else None


def balanced_object(text: str) -> Optional[str]:
    """First {...} span whose braces balance, ignoring braces inside JSON strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # unbalanced from here; try the next opening brace
        start = text.find("{", start + 1)
    return None


def candidates(reply: str) -> Iterator[Tuple[str, str]]:
    fenced = fenced_block(reply)
    if fenced:
        yield "fenced", fenced
    braces = balanced_object(reply)
    if braces:
        yield "braces", braces
    yield "whole", reply.strip()


def validate(candidate: str) -> Optional[AnalysisResult]:
    try:
        return AnalysisResult.model_validate_json(candidate, strict=True)
    except ValidationError:
        return None


def parse_analysis(reply: str) -> ParsedAnalysis:
    for source, candidate in candidates(reply or ""):
        result = validate(candidate)
        if result is not None:
            return ParsedAnalysis(result, source)

    logger.warning("Model reply did not contain a valid analysis, using fallback result")
    return ParsedAnalysis(FALLBACK_RESULT.model_copy(deep=True), "fallback")
