"""Configuration management for autodoc."""

import copy
import os
import re
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_FILENAMES = ("autodoc.config.yaml", "autodoc.config.yml", "autodoc.config.json")

DEFAULT_FILE_PROMPT = (
    "Write a detailed technical explanation of what this code does.\n"
    "Focus on the high-level purpose of the code and how it may be used in the larger project.\n"
    "Include code examples where appropriate. Keep your response between 100 and 300 words.\n"
    "DO NOT RETURN MORE THAN 300 WORDS.\n"
    "Output should be in markdown format.\n"
    "Do not just list the methods and classes in this file."
)

DEFAULT_FOLDER_PROMPT = (
    "Write a technical explanation of what the code in this folder does\n"
    "and how it might fit into the larger project or work with other parts of the project.\n"
    "Give examples of how this code might be used. Include code examples where appropriate.\n"
    "Be concise. Include any information that may be relevant to a developer who is curious about this code.\n"
    "Keep your response under 400 words. Output should be in markdown format.\n"
    "Do not just list the files and folders in this folder."
)

DEFAULT_CONFIG: dict[str, Any] = {
    "org_name": "",
    "repos": [{"name": "", "repository_url": "", "branch": "master"}],
    "root": ".",
    "output": "./.autodoc",
    "llms": ["claude-3-5-haiku-latest"],
    "ignore": [
        ".*",
        "*package-lock.json",
        "*package.json",
        "node_modules",
        "*dist*",
        "*build*",
        "*test*",
        "*.svg",
        "*.md",
        "*.mdx",
        "*.toml",
        "*autodoc*",
    ],
    "file_prompt": DEFAULT_FILE_PROMPT,
    "folder_prompt": DEFAULT_FOLDER_PROMPT,
    "chat_prompt": "",
    "content_type": "code",
    "target_audience": "smart developer",
    "link_hosted": False,
    "hosted_docs_url": "",
    "generate_questions": True,
    "max_output_tokens": 1024,
    "model_limits": {
        "claude-3-5-haiku-latest": 200_000,
        "claude-3-7-sonnet-latest": 200_000,
        "claude-sonnet-4-20250514": 200_000,
        "claude-opus-4-20250514": 200_000,
    },
    "embedding_model": "sentence-transformers/all-MiniLM-L6-v2",
    "scheduling": {
        "max_workers": 4,
        "requests_per_minute": 50,
        "max_attempts": 5,
        "base_delay": 1.0,
        "max_delay": 60.0,
    },
    "chunking": {"max_tokens": 3000, "min_tokens": 200},
    # requests_per_minute 0 means embeddings are not rate limited
    "indexing": {"max_chars": 1000, "overlap_chars": 100, "requests_per_minute": 0},
}


def _find_config_file(root: Path | None = None) -> Path | None:
    """Look for an autodoc config file in the working directory."""
    base = root or Path.cwd()
    for name in CONFIG_FILENAMES:
        candidate = base / name
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is not None and not Path(config_path).exists():
        raise ConfigError(f"Config file not found: {config_path}")
    path = Path(config_path) if config_path else _find_config_file()
    if path:
        try:
            with open(path, encoding="utf-8") as f:
                file_cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {path}: {e}") from e
        if not isinstance(file_cfg, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")
        _deep_merge(cfg, normalize_keys(file_cfg))

    # Env overrides
    if api_key := os.environ.get("ANTHROPIC_API_KEY"):
        cfg["anthropic_api_key"] = api_key

    validate_config(cfg)
    return cfg


def normalize_keys(data: Any) -> Any:
    """Convert camelCase keys (as in JSON configs from earlier releases) to snake_case."""
    if isinstance(data, dict):
        return {_snake(k) if isinstance(k, str) else k: normalize_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [normalize_keys(v) for v in data]
    return data


def _snake(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name).lower()


def validate_config(cfg: dict[str, Any]) -> None:
    """Raise ConfigError if the configuration cannot drive a run."""
    for key in ("root", "output"):
        if not isinstance(cfg.get(key), str) or not cfg[key]:
            raise ConfigError(f"'{key}' must be a non-empty path")

    llms = cfg.get("llms")
    if not isinstance(llms, list) or not llms:
        raise ConfigError("'llms' must be a non-empty list of model identifiers")
    limits = cfg.get("model_limits") or {}
    for model in llms:
        limit = limits.get(model)
        if not isinstance(limit, int) or limit <= 0:
            raise ConfigError(f"No positive input limit configured for model '{model}' in 'model_limits'")

    ignore = cfg.get("ignore")
    if not isinstance(ignore, list) or not all(isinstance(p, str) for p in ignore):
        raise ConfigError("'ignore' must be a list of glob patterns")

    if not isinstance(cfg.get("repos"), list):
        raise ConfigError("'repos' must be a list")

    if cfg.get("link_hosted") and not cfg.get("hosted_docs_url"):
        raise ConfigError("'link_hosted' requires 'hosted_docs_url'")

    sched = cfg.get("scheduling", {})
    for key in ("max_workers", "max_attempts"):
        if not isinstance(sched.get(key), int) or sched[key] < 1:
            raise ConfigError(f"'scheduling.{key}' must be a positive integer")
    if not sched.get("requests_per_minute") or sched["requests_per_minute"] <= 0:
        raise ConfigError("'scheduling.requests_per_minute' must be positive")

    chunking = cfg.get("chunking", {})
    if not 0 < chunking.get("min_tokens", 0) <= chunking.get("max_tokens", 0):
        raise ConfigError("'chunking' requires 0 < min_tokens <= max_tokens")

    indexing = cfg.get("indexing", {})
    max_chars = indexing.get("max_chars", 0)
    overlap = indexing.get("overlap_chars", -1)
    if max_chars <= 0 or not 0 <= overlap < max_chars:
        raise ConfigError("'indexing' requires max_chars > 0 and 0 <= overlap_chars < max_chars")
    if indexing.get("requests_per_minute", 0) < 0:
        raise ConfigError("'indexing.requests_per_minute' must not be negative")


def output_dirs(cfg: dict[str, Any]) -> dict[str, Path]:
    """Artifact directories shared between the pipeline stages."""
    base = Path(cfg["output"]).expanduser() / "docs"
    return {"json": base / "json", "markdown": base / "markdown", "data": base / "data"}


def project_name(cfg: dict[str, Any]) -> str:
    repos = cfg.get("repos") or []
    if repos and repos[0].get("name"):
        return repos[0]["name"]
    return Path(cfg["root"]).expanduser().resolve().name


def repository_url(cfg: dict[str, Any]) -> tuple[str, str]:
    """Return (url, branch) of the first configured repository."""
    repos = cfg.get("repos") or []
    if not repos:
        return "", "master"
    return repos[0].get("repository_url", "").rstrip("/"), repos[0].get("branch", "master")


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v


def source_url(cfg: dict[str, Any], path: str, is_folder: bool) -> str | None:
    """Link to a node in the hosted repository, if one is configured."""
    url, branch = repository_url(cfg)
    if not url:
        return None
    if not path:
        return url
    return f"{url}/{'tree' if is_folder else 'blob'}/{branch}/{path}"
