"""Configuration package for Construct.

This package provides Pydantic configuration models and loading utilities.
"""

from construct.core.config.loader import (
    check_unexpanded_vars,
    expand_env_vars,
    expand_env_vars_recursive,
    load_config,
)
from construct.core.config.models import (
    CachePolicyConfig,
    CommandsConfig,
    Config,
    ExecutorConfig,
    FeedConfig,
    LaneConfig,
    LoggingConfig,
    ProviderConfig,
    SystemConfig,
    TimeoutTiersConfig,
    WorkflowConfig,
)

__all__ = [
    # Models
    "CachePolicyConfig",
    "CommandsConfig",
    "Config",
    "ExecutorConfig",
    "FeedConfig",
    "LaneConfig",
    "LoggingConfig",
    "ProviderConfig",
    "SystemConfig",
    "TimeoutTiersConfig",
    "WorkflowConfig",
    # Loaders
    "check_unexpanded_vars",
    "expand_env_vars",
    "expand_env_vars_recursive",
    "load_config",
]
