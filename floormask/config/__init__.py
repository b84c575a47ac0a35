"""
Config 模块 - 配置加载与校验

职责：
- default.yaml（严格模式）作为唯一的默认值来源
- permissive.yaml（宽松模式）等预设合并在默认值之上
- dict / dotlist 覆盖项与取值校验
"""

from .loader import (
    CONFIG_DIR,
    DEFAULT_CONFIG_PATH,
    PERMISSIVE_CONFIG_PATH,
    ChannelOrder,
    FusionMode,
    load_config,
    validate_config,
    with_defaults,
)

__all__ = [
    "CONFIG_DIR",
    "DEFAULT_CONFIG_PATH",
    "PERMISSIVE_CONFIG_PATH",
    "ChannelOrder",
    "FusionMode",
    "load_config",
    "validate_config",
    "with_defaults"
]
