"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import RolegateConfig


def load_config(cli_path: str | None = None) -> RolegateConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults."""
    config_paths = [
        Path(cli_path) if cli_path else None,
        Path("./rolegate.yaml"),
        Path.home() / ".rolegate" / "config.yaml",
    ]

    for path in config_paths:
        if path and path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                raw = _expand_env_vars(raw)
                return RolegateConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            except ValidationError as e:
                raise ValueError(f"Invalid config in {path}: {e}") from e

    return RolegateConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `rolegate config init`
DEFAULT_CONFIG_TEMPLATE = """\
# rolegate.yaml

# Policy source
policy:
  kind: "builtin"              # builtin | file | http
  # path: "policy.yaml"        # kind: file (YAML or JSON)
  # url: "https://example.com/api/permissions"   # kind: http
  timeout: 10
  # token_env: "ROLEGATE_TOKEN"   # bearer token for kind: http

# Decision cache
cache:
  enabled: true
  max_entries: 4096

# Evaluation
evaluation:
  self_sentinel: "self"        # condition value meaning "the caller's own id"
  serve_stale_on_failure: false

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
