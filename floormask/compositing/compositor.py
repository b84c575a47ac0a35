"""
Compositor - 输出资源生成

- 软边 alpha 资源：RGB 恒为白色，alpha 为高斯模糊后的掩码，
  用作地毯叠加的裁剪蒙版，使地毯在地面边界和图像边缘处平滑淡出
- 调试叠加资源：红色 RGB，掩码为 255 处 alpha=200，其余为 0，不模糊
"""

import cv2
import numpy as np
from omegaconf import DictConfig

from ..morphology.operations import as_mask


class Compositor:
    """输出资源生成器"""

    def __init__(self, cfg: DictConfig):
        """
        初始化

        Args:
            cfg: 配置对象，需包含 compositing 分节
        """
        self.cfg = cfg.compositing
        self.blur_width_divisor = int(self.cfg.blur_width_divisor)
        self.blur_min = int(self.cfg.blur_min)
        self.blur_max = int(self.cfg.blur_max)
        self.debug_overlay = bool(self.cfg.debug_overlay)
        self.debug_alpha = int(self.cfg.debug_alpha)

    def blur_radius(self, width: int) -> int:
        """模糊半径 = clamp(round(width / 200), 2, 12)，四舍五入取半进一"""
        radius = int(np.floor(width / self.blur_width_divisor + 0.5))
        return max(self.blur_min, min(self.blur_max, radius))

    def compose(self, mask: np.ndarray) -> tuple[np.ndarray, np.ndarray | None]:
        """
        生成两个输出资源

        Args:
            mask: 原始分辨率 uint8 (H,W) {0,255}

        Returns:
            (软边 alpha 资源, 调试叠加资源或 None)，均为 uint8 (H,W,4) RGBA
        """
        soft = self.soft_alpha_asset(mask)
        debug = self.debug_overlay_asset(mask) if self.debug_overlay else None
        return soft, debug

    def soft_alpha_asset(self, mask: np.ndarray) -> np.ndarray:
        """
        软边 alpha 资源

        Args:
            mask: uint8 (H,W) {0,255}

        Returns:
            uint8 (H,W,4)，RGB=255，A=模糊后的掩码
        """
        mask = as_mask(mask)
        h, w = mask.shape
        sigma = self.blur_radius(w)

        alpha = mask
        if sigma > 0:
            # 图像外按透明计，贴边的地面也会淡出
            alpha = cv2.GaussianBlur(
                mask, (0, 0), sigmaX=sigma, sigmaY=sigma, borderType=cv2.BORDER_CONSTANT
            )

        asset = np.full((h, w, 4), 255, dtype=np.uint8)
        asset[:, :, 3] = alpha
        return asset

    def debug_overlay_asset(self, mask: np.ndarray) -> np.ndarray:
        """
        红色半透明调试叠加

        Args:
            mask: uint8 (H,W) {0,255}

        Returns:
            uint8 (H,W,4)
        """
        mask = as_mask(mask)
        h, w = mask.shape
        asset = np.zeros((h, w, 4), dtype=np.uint8)
        asset[:, :, 0] = 255
        asset[:, :, 3] = np.where(mask == 255, self.debug_alpha, 0)
        return asset
