import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from rulegate_core.errors import ConfigurationError

DEFAULT_CONFIG: dict = {
    "model": "openai",
    "store": "noop",
    "store_path": ".rulegate.db",
    "vector_store_path": ".rulegate-index",
    "rules": [],  # Markdown/text files to index; [] = use the built-in guidelines
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/", "*.min.js")
    "reviewers": [],  # GitHub logins to request a review from
    "review_draft_prs": False,
}

BUILTIN_GUIDELINES_DIR = Path(__file__).parent / "guidelines"


@dataclass(frozen=True)
class ReviewSettings:
    """Tunables handed to every pipeline component at construction.

    Every field can be set from the config file under the same name.
    """

    rules_collection: str = "coding_rules"
    rules_tag: str = "rules"
    # Two retrieval call sites, two bars: rule checks want stronger evidence
    # than conversational answers.
    rule_min_score: float = 0.5
    chat_min_score: float = 0.35
    relax_floor: float = 0.25
    relax_margin: float = 0.05
    top_k: int = 10
    chunk_size: int = 1000
    chunk_overlap: int = 200
    query_char_limit: int = 1000
    snippet_char_limit: int = 3000
    max_files: int = 300
    max_workers: int = 4
    batch_limit: int = 60
    request_timeout: float = 60.0
    exclude: tuple[str, ...] = ()
    reviewers: tuple[str, ...] = ()
    test_file_markers: tuple[str, ...] = (".test.", ".spec.", "__tests__", "tests/", "test_", "_test.")
    review_draft_prs: bool = False

    @classmethod
    def from_config(cls, config: dict) -> "ReviewSettings":
        values = {}
        for f in fields(cls):
            if config.get(f.name) is None:
                continue
            value = config[f.name]
            values[f.name] = tuple(value) if isinstance(value, list) else value
        return cls(**values)


def load_config(config_path: str = ".rulegate.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .rulegate.yml in the current directory
      3. CLI argument overrides
    """
    config = {
        **DEFAULT_CONFIG,
        "rules": list(DEFAULT_CONFIG["rules"]),
        "exclude": list(DEFAULT_CONFIG["exclude"]),
        "reviewers": list(DEFAULT_CONFIG["reviewers"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

    return config


def require(config: dict, key: str) -> str:
    """Return ``config[key]`` or raise ConfigurationError naming the env var to set."""
    value = config.get(key)
    if not value:
        raise ConfigurationError(f"{key.upper()} is not set.")
    return value


def load_rule_paths(config: dict) -> list[Path]:
    """
    Resolve the rule documents to index.

    If ``rules`` is set in config, every entry is a file or a directory (all
    ``*.md`` / ``*.txt`` inside it, recursively), relative to cwd.
    Otherwise falls back to the built-in guidelines.
    """
    entries = config.get("rules") or []
    if not entries:
        builtin = sorted(BUILTIN_GUIDELINES_DIR.glob("*.md"))
        if not builtin:
            raise FileNotFoundError("No rules configured and the built-in guidelines are missing.")
        return builtin

    paths: list[Path] = []
    for entry in entries:
        p = Path(entry)
        if not p.exists():
            raise FileNotFoundError(f"Rules path not found: {entry}")
        if p.is_dir():
            paths.extend(sorted(q for q in p.rglob("*") if q.suffix in (".md", ".txt")))
        else:
            paths.append(p)
    return paths
