"""
floormask - 房间照片地面分割掩码

预处理 → 分类器 → 初始掩码 → 形态学清理 → 连通域过滤 → 重采样 → 输出资源，
可选原图 + 镜像两路 TTA。
"""

from .context import CancelToken, FloorMaskResult, ModelInput
from .errors import (
    ConfigurationError,
    FloorMaskError,
    InputError,
    ModelError,
    PipelineCancelled,
)
from .pipeline import FloorMaskPipeline, load_pipeline

__all__ = [
    "CancelToken",
    "FloorMaskResult",
    "ModelInput",
    "FloorMaskError",
    "InputError",
    "ConfigurationError",
    "ModelError",
    "PipelineCancelled",
    "FloorMaskPipeline",
    "load_pipeline"
]

__version__ = "0.1.0"
