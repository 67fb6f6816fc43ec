from .loader import load_config
from .models import (
    CacheConfig,
    EvaluationConfig,
    PolicySourceConfig,
    RolegateConfig,
)

__all__ = [
    "CacheConfig",
    "EvaluationConfig",
    "PolicySourceConfig",
    "RolegateConfig",
    "load_config",
]
