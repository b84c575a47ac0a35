"""
形态学基本操作

所有操作输入输出都是同尺寸的 uint8 {0,255} 掩码，不修改输入。
图像边界外的像素视为中性元素：膨胀时不贡献，腐蚀时不约束。
"""

import cv2
import numpy as np

from ..errors import InputError


def as_mask(mask: np.ndarray) -> np.ndarray:
    """
    校验并转换为连续的 uint8 二维掩码

    Raises:
        InputError: 不是二维掩码
    """
    mask = np.asarray(mask)
    if mask.ndim != 2 or mask.shape[0] == 0 or mask.shape[1] == 0:
        raise InputError(f"Mask must be a non-empty 2D array, got shape {mask.shape}")
    return np.ascontiguousarray(mask, dtype=np.uint8)


def _square_kernel(radius: int) -> np.ndarray:
    size = 2 * radius + 1
    return cv2.getStructuringElement(cv2.MORPH_RECT, (size, size))


def close(mask: np.ndarray, radius: int = 1) -> np.ndarray:
    """
    闭运算（先膨胀后腐蚀）：填补小孔和缝隙，基本不外扩边界

    Args:
        mask: 输入掩码
        radius: 半径，1 = 3×3，2 = 5×5；0 表示跳过
    """
    mask = as_mask(mask)
    if radius <= 0:
        return mask.copy()
    return cv2.morphologyEx(mask, cv2.MORPH_CLOSE, _square_kernel(radius))


def erode(mask: np.ndarray, iterations: int = 1) -> np.ndarray:
    """3×3 腐蚀：切断家具腿之间的细长地面"""
    mask = as_mask(mask)
    if iterations <= 0:
        return mask.copy()
    return cv2.erode(mask, _square_kernel(1), iterations=iterations)


def dilate(mask: np.ndarray, iterations: int = 1) -> np.ndarray:
    """3×3 膨胀：恢复腐蚀损失的面积"""
    mask = as_mask(mask)
    if iterations <= 0:
        return mask.copy()
    return cv2.dilate(mask, _square_kernel(1), iterations=iterations)


def dilate_vertical(mask: np.ndarray, iterations: int = 1, radius: int = 2) -> np.ndarray:
    """
    纵向膨胀：核只覆盖上下 radius 行、0 列

    Args:
        mask: 输入掩码
        iterations: 次数，0 表示跳过
        radius: 纵向半径，2 对应 5×1 核
    """
    mask = as_mask(mask)
    if iterations <= 0 or radius <= 0:
        return mask.copy()
    kernel = np.ones((2 * radius + 1, 1), dtype=np.uint8)
    return cv2.dilate(mask, kernel, iterations=iterations)


def mode_filter(mask: np.ndarray) -> np.ndarray:
    """
    3×3 众数滤波：9 邻域（含自身）中至少 5 个为地面才保留为地面

    边界外的邻居按非地面计。
    """
    mask = as_mask(mask)
    floor = (mask == 255).astype(np.float32)
    counts = cv2.filter2D(
        floor,
        -1,
        np.ones((3, 3), dtype=np.float32),
        borderType=cv2.BORDER_CONSTANT
    )
    return np.where(counts >= 4.5, 255, 0).astype(np.uint8)
