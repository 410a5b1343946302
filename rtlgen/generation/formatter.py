"""Cleanup of raw model output into test file content."""

import re

_FENCED_BLOCK = re.compile(
    r"```(?:typescript|tsx|javascript|jsx|ts|js)?[^\S\n]*\n?([\s\S]*?)```",
    re.IGNORECASE,
)
_FIRST_IMPORT = re.compile(r"(^|\n)\s*import\s+")


def extract_code_block(raw: str) -> str:
    """Return the test source embedded in a model response.

    Prefers the first fenced code block; otherwise drops any prose before
    the first ``import`` statement; otherwise returns the trimmed text.
    """
    fenced = _FENCED_BLOCK.search(raw)
    if fenced and fenced.group(1).strip():
        return fenced.group(1).strip()

    first_import = _FIRST_IMPORT.search(raw)
    if first_import:
        return raw[first_import.start():].strip()

    return raw.strip()
