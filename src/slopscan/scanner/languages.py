"""Language detection and lexical helpers shared by matcher and fixer."""

from __future__ import annotations

from pathlib import PurePath

# File extension → language
_EXTENSIONS = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".kt": "kotlin",
    ".swift": "swift",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".sh": "shell",
    ".bash": "shell",
    ".rb": "ruby",
}

C_LIKE = frozenset(
    {"javascript", "typescript", "java", "c", "cpp", "csharp", "go", "rust", "kotlin", "swift"}
)
_HASH_COMMENT = frozenset({"python", "yaml", "toml", "shell", "ruby"})


def language_for(file_path: str) -> str:
    """Return the language name for a path, or "" if unknown."""
    return _EXTENSIONS.get(PurePath(file_path).suffix.lower(), "")


def line_comment(language: str) -> str | None:
    """Line-comment prefix for a language, None if it has none (JSON)."""
    if language in _HASH_COMMENT:
        return "#"
    if language in C_LIKE:
        return "//"
    if language == "json":
        return None
    return "#"



def split_lines(content: str) -> list[str]:
    """Split on ``\\n`` only, dropping a trailing ``\\r`` from each line.

    ``str.splitlines`` also breaks on form feed and other separators that
    are legal inside source files, which would shift line numbers away from
    what editors and ``ast`` report.
    """
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def lexical_spans(content: str, language: str) -> list[tuple[int, int, str]]:
    """Offsets of string literals and comments as ``(start, end, kind)``.

    ``kind`` is "string" or "comment"; ``end`` is exclusive. Template
    literal interpolation (``${...}``) is treated as part of the string.
    Unknown languages have no spans.
    """
    if language == "python":
        quotes = ("'", '"')
        line_comments = ("#",)
        block = None
    elif language in C_LIKE:
        quotes = ("'", '"', "`")
        line_comments = ("//",)
        block = ("/*", "*/")
    else:
        return []

    spans: list[tuple[int, int, str]] = []
    i = 0
    n = len(content)
    while i < n:
        ch = content[i]
        if block and content.startswith(block[0], i):
            end = content.find(block[1], i + 2)
            end = n if end == -1 else end + len(block[1])
            spans.append((i, end, "comment"))
            i = end
            continue
        if any(content.startswith(c, i) for c in line_comments):
            end = content.find("\n", i)
            end = n if end == -1 else end
            spans.append((i, end, "comment"))
            i = end
            continue
        if ch in quotes:
            triple = ch * 3
            if language == "python" and content.startswith(triple, i):
                end = content.find(triple, i + 3)
                end = n if end == -1 else end + 3
            else:
                end = _string_end(content, i, ch)
            spans.append((i, end, "string"))
            i = end
            continue
        i += 1
    return spans


def blank_strings_and_comments(content: str, language: str) -> str:
    """Replace string literals and comments with spaces, keeping newlines.

    Offsets and line numbers in the result line up with ``content``, so
    bracket matching on the blanked text maps back to the source.
    """
    spans = lexical_spans(content, language)
    if not spans:
        return content
    out = list(content)
    for start, end, kind in spans:
        if kind == "string":
            # Keep the quote characters so the blanked text stays readable
            start, end = start + 1, end - 1
        for k in range(start, min(end, len(out))):
            if out[k] != "\n":
                out[k] = " "
    return "".join(out)


def line_ends_in_string(content: str, language: str, line: int) -> bool:
    """True if the newline ending 1-based ``line`` sits inside a string literal."""
    pos = -1
    for _ in range(line):
        pos = content.find("\n", pos + 1)
        if pos == -1:
            return False
    return any(
        start < pos < end
        for start, end, kind in lexical_spans(content, language)
        if kind == "string"
    )


def _string_end(content: str, start: int, quote: str) -> int:
    i = start + 1
    n = len(content)
    while i < n:
        ch = content[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            # Unterminated single-line string
            return i
        i += 1
    return n
