"""
掩码重采样与 TTA 辅助函数
"""

import cv2
import numpy as np

from ..errors import InputError
from ..morphology.operations import as_mask


def resize_mask(mask: np.ndarray, target_w: int, target_h: int) -> np.ndarray:
    """
    最近邻缩放到目标尺寸，并以中点重新二值化

    Args:
        mask: uint8 (h,w) 掩码
        target_w: 目标宽度
        target_h: 目标高度

    Returns:
        uint8 (target_h, target_w)，取值严格为 {0,255}

    Raises:
        InputError: 目标尺寸非法
    """
    if target_w <= 0 or target_h <= 0:
        raise InputError(f"Invalid target size: {target_w}x{target_h}")

    mask = as_mask(mask)
    if mask.shape != (target_h, target_w):
        mask = cv2.resize(
            mask,
            (target_w, target_h),  # cv2.resize 使用 (width, height)
            interpolation=cv2.INTER_NEAREST
        )
    return np.where(mask > 127, 255, 0).astype(np.uint8)


def flip_horizontal(mask: np.ndarray) -> np.ndarray:
    """列反转（水平镜像）"""
    return np.ascontiguousarray(as_mask(mask)[:, ::-1])


def merge_masks_and(mask_a: np.ndarray, mask_b: np.ndarray) -> np.ndarray:
    """
    按像素 AND 合并：两者都为地面才保留

    Raises:
        InputError: 尺寸不一致
    """
    mask_a = as_mask(mask_a)
    mask_b = as_mask(mask_b)
    if mask_a.shape != mask_b.shape:
        raise InputError(f"Cannot merge masks of shape {mask_a.shape} and {mask_b.shape}")
    return np.where((mask_a == 255) & (mask_b == 255), 255, 0).astype(np.uint8)
