from pydantic import BaseModel, Field
from typing import Literal


class PolicySourceConfig(BaseModel):
    kind: Literal["builtin", "file", "http"] = "builtin"
    path: str | None = None
    url: str | None = None
    timeout: float = Field(default=10.0, gt=0)
    token_env: str | None = None


class CacheConfig(BaseModel):
    enabled: bool = True
    max_entries: int = Field(default=4096, gt=0)


class EvaluationConfig(BaseModel):
    self_sentinel: str = Field(default="self", min_length=1)
    serve_stale_on_failure: bool = False


class RolegateConfig(BaseModel):
    policy: PolicySourceConfig = Field(default_factory=PolicySourceConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
