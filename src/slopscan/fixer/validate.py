"""Post-fix validation — does the rewritten file still parse?"""

from __future__ import annotations

import ast
import json
import logging

import yaml

from slopscan.errors import FixValidationError
from slopscan.scanner.languages import C_LIKE, blank_strings_and_comments, language_for

logger = logging.getLogger(__name__)

_PAIRS = {")": "(", "]": "[", "}": "{"}


def is_valid_source(content: str, file_path: str) -> bool:
    """Best-effort syntax check for the file's language.

    Python, JSON, and YAML are parsed for real. C-like languages get a
    bracket balance check on code with strings and comments blanked out.
    Unknown languages always pass.
    """
    language = language_for(file_path)
    if language == "python":
        try:
            ast.parse(content)
        except (SyntaxError, ValueError):
            return False
        return True
    if language == "json":
        try:
            json.loads(content)
        except ValueError:
            return False
        return True
    if language == "yaml":
        try:
            list(yaml.safe_load_all(content))
        except yaml.YAMLError:
            return False
        return True
    if language in C_LIKE:
        return brackets_balanced(blank_strings_and_comments(content, language))
    return True


def brackets_balanced(code: str) -> bool:
    stack: list[str] = []
    for ch in code:
        if ch in "([{":
            stack.append(ch)
        elif ch in _PAIRS:
            if not stack or stack.pop() != _PAIRS[ch]:
                return False
    return not stack


def validate_fix(before: str, after: str, file_path: str) -> None:
    """Raise FixValidationError if a fix turned valid source into invalid source.

    A file that did not parse before the fix cannot be judged, so it is
    let through.
    """
    if is_valid_source(after, file_path):
        return
    if not is_valid_source(before, file_path):
        logger.debug("%s did not parse before the fix; not validating", file_path)
        return
    raise FixValidationError(
        f"Fix would leave {file_path} unparseable",
        context={"path": file_path},
    )
