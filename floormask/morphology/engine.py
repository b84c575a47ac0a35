"""
MorphologyEngine - 掩码清理流水线

固定顺序：
close → 去小块 → 腐蚀×N →（N>0 时）再去小块 → 膨胀×N → 纵向膨胀×N → 众数滤波 → 填孔

每一步的输出作为下一步的输入，尺寸始终不变。
"""

import numpy as np
from omegaconf import DictConfig

from . import operations as ops
from .components import fill_holes, remove_small_components


class MorphologyEngine:
    """形态学清理引擎"""

    def __init__(self, cfg: DictConfig):
        """
        初始化引擎

        Args:
            cfg: 配置对象，需包含 morphology 分节
        """
        self.cfg = cfg.morphology
        self.close_radius = int(self.cfg.close_radius)
        self.erode_iterations = int(self.cfg.erode_iterations)
        self.dilate_iterations = int(self.cfg.dilate_iterations)
        self.vertical_dilate_iterations = int(self.cfg.vertical_dilate_iterations)
        self.vertical_dilate_radius = int(self.cfg.get("vertical_dilate_radius", 2))
        self.min_component_area_ratio = float(self.cfg.min_component_area_ratio)
        self.max_hole_area_ratio = float(self.cfg.max_hole_area_ratio)

    def refine(self, mask: np.ndarray) -> np.ndarray:
        """
        对模型分辨率的初始掩码执行完整清理

        Args:
            mask: uint8 (Hs,Ws) {0,255}

        Returns:
            清理后的 uint8 (Hs,Ws) {0,255}
        """
        mask = ops.close(mask, self.close_radius)
        mask = self.remove_small_components(mask)

        # 腐蚀切断细桥，再次去小块，然后膨胀恢复主体（开运算）
        mask = ops.erode(mask, self.erode_iterations)
        if self.erode_iterations > 0:
            mask = self.remove_small_components(mask)
        mask = ops.dilate(mask, self.dilate_iterations)

        mask = ops.dilate_vertical(
            mask, self.vertical_dilate_iterations, self.vertical_dilate_radius
        )
        mask = ops.mode_filter(mask)
        mask = self.fill_holes(mask)
        return mask

    def remove_small_components(self, mask: np.ndarray) -> np.ndarray:
        return remove_small_components(mask, self.min_component_area_ratio)

    def fill_holes(self, mask: np.ndarray) -> np.ndarray:
        return fill_holes(mask, self.max_hole_area_ratio)
