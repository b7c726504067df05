from __future__ import annotations

import fnmatch
from pathlib import PurePosixPath

NON_CODE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".webp",
    ".bmp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".ogg",
    ".zip",
    ".tar",
    ".gz",
    ".rar",
    ".7z",
    ".lock",  # e.g. package-lock.json, Pipfile.lock
}

# extension -> (human readable language, code fence tag)
_LANGUAGES = {
    "ts": ("TypeScript", "typescript"),
    "js": ("JavaScript", "javascript"),
    "tsx": ("TypeScript React", "tsx"),
    "jsx": ("JavaScript React", "jsx"),
    "py": ("Python", "python"),
    "java": ("Java", "java"),
    "go": ("Go", "go"),
    "rs": ("Rust", "rust"),
    "cpp": ("C++", "cpp"),
    "c": ("C", "c"),
    "cs": ("C#", "csharp"),
    "php": ("PHP", "php"),
    "rb": ("Ruby", "ruby"),
    "swift": ("Swift", "swift"),
    "kt": ("Kotlin", "kotlin"),
    "sql": ("SQL", "sql"),
    "sh": ("Shell Script", "bash"),
    "yml": ("YAML", "yaml"),
    "yaml": ("YAML", "yaml"),
    "json": ("JSON", "json"),
    "md": ("Markdown", "markdown"),
}


def is_code_file(file_name: str) -> bool:
    return not any(file_name.lower().endswith(ext) for ext in NON_CODE_EXTENSIONS)


def _extension(file_name: str) -> str:
    return PurePosixPath(file_name).suffix.lstrip(".").lower()


def language_for(file_name: str) -> str:
    """Human readable language name used in prompts, e.g. ``"TypeScript"``."""
    ext = _extension(file_name)
    return _LANGUAGES.get(ext, (ext.upper(), ""))[0]


def fence_language(file_name: str) -> str:
    """Code fence tag for ``file_name``, or ``""`` when unknown."""
    return _LANGUAGES.get(_extension(file_name), ("", ""))[1]


def is_test_file(file_name: str, markers: tuple[str, ...]) -> bool:
    """True when any test marker matches a segment of the path.

    - ``"tests/"`` (trailing slash): a directory with exactly that name
    - ``"test_"`` (trailing underscore): the basename starts with it
    - anything else (``".spec."``, ``"__tests__"``): contained in one segment

    Matching per segment keeps ``src/contests/app.js`` a source file.
    """
    parts = PurePosixPath(file_name).parts
    if not parts:
        return False
    directories, name = parts[:-1], parts[-1]
    for marker in markers:
        if marker.endswith("/"):
            if marker.rstrip("/") in directories:
                return True
        elif marker.endswith("_"):
            if name.startswith(marker):
                return True
        elif any(marker in part for part in parts):
            return True
    return False


def is_excluded(filename: str, patterns: tuple[str, ...] | list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.lock", "*.min.js"
    - Directory names/prefixes: "migrations/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False
