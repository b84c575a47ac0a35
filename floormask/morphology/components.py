"""
连通域过滤

- remove_small_components: 去掉面积低于 floor(地面总像素 × ratio) 的地面小块
- fill_holes: 把不与图像边界连通、且面积不超过 floor(总像素 × ratio) 的背景孔洞填为地面

两者都使用 8 连通，返回新掩码，不修改输入。
"""

import cv2
import numpy as np

from .operations import as_mask


def remove_small_components(mask: np.ndarray, area_ratio: float) -> np.ndarray:
    """
    去除小的地面连通块

    Args:
        mask: uint8 {0,255} 掩码
        area_ratio: 最小面积占地面总面积的比例（如 0.003~0.006）

    Returns:
        新掩码，地面像素数不会增加
    """
    mask = as_mask(mask)
    floor = (mask == 255).astype(np.uint8)
    total_floor = int(floor.sum())
    if total_floor == 0:
        return mask.copy()

    min_area = max(1, int(np.floor(total_floor * area_ratio)))

    _, labels, stats, _ = cv2.connectedComponentsWithStats(floor, connectivity=8)
    areas = stats[:, cv2.CC_STAT_AREA]

    # label 0 是背景
    small = areas < min_area
    small[0] = False

    out = mask.copy()
    out[small[labels]] = 0
    return out


def fill_holes(mask: np.ndarray, max_hole_ratio: float = 0.02) -> np.ndarray:
    """
    填充被地面包围的小孔洞

    Args:
        mask: uint8 {0,255} 掩码
        max_hole_ratio: 可填充孔洞的最大面积占整图像素的比例

    Returns:
        新掩码，地面像素数不会减少；与边界连通的背景永远不会被填充
    """
    mask = as_mask(mask)
    background = (mask == 0).astype(np.uint8)
    max_hole_area = int(np.floor(mask.size * max_hole_ratio))

    num_labels, labels, stats, _ = cv2.connectedComponentsWithStats(background, connectivity=8)
    if num_labels <= 1:
        return mask.copy()

    fillable = stats[:, cv2.CC_STAT_AREA] <= max_hole_area
    fillable[0] = False

    # 与边界连通的背景属于外部区域
    border = np.concatenate([labels[0], labels[-1], labels[:, 0], labels[:, -1]])
    fillable[np.unique(border)] = False

    out = mask.copy()
    out[fillable[labels]] = 255
    return out
