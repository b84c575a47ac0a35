"""
Context - 阶段间传递的数据结构

贯穿整个 Pipeline 的核心数据结构。
"""

from dataclasses import dataclass
import threading

import numpy as np

from .errors import PipelineCancelled


@dataclass
class ModelInput:
    """预处理输出，交给分类器适配器"""
    
    tensor: np.ndarray             # float32 (1,3,S,S) - 通道优先、已归一化
    orig_size: tuple[int, int]     # (H_orig, W_orig) - 原始尺寸
    flipped: bool = False          # 是否为水平镜像（TTA 分支）


@dataclass(frozen=True)
class FloorMaskResult:
    """单次调用的最终输出，创建后不再修改"""
    
    mask: np.ndarray                # uint8 (H,W) {0,255} - 原始分辨率
    width: int
    height: int
    floor_mask_asset: np.ndarray    # uint8 (H,W,4) - 白色 RGB + 模糊 alpha
    debug_overlay_asset: np.ndarray | None = None  # uint8 (H,W,4) - 红色半透明
    
    @property
    def floor_ratio(self) -> float:
        """地面像素占比"""
        if self.mask.size == 0:
            return 0.0
        return float(np.count_nonzero(self.mask == 255)) / self.mask.size


class CancelToken:
    """
    显式取消令牌
    
    Pipeline 在预处理后、推理后、形态学后检查一次；
    不支持阶段内部的中途取消。
    """
    
    def __init__(self):
        self._event = threading.Event()
    
    def cancel(self) -> None:
        """请求取消"""
        self._event.set()
    
    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
    
    def raise_if_cancelled(self, stage: str = "") -> None:
        """已取消时抛出 PipelineCancelled"""
        if self._event.is_set():
            suffix = f" after {stage}" if stage else ""
            raise PipelineCancelled(f"Floor detection cancelled{suffix}")
