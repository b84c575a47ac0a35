"""
Morphology 模块 - 掩码清理

职责：
- 闭运算、腐蚀、膨胀、纵向膨胀、众数滤波
- 去除小地面块、填充被包围的小孔洞
- 按固定顺序串联上述操作
"""

from .operations import close, erode, dilate, dilate_vertical, mode_filter
from .components import remove_small_components, fill_holes
from .engine import MorphologyEngine

__all__ = [
    "close",
    "erode",
    "dilate",
    "dilate_vertical",
    "mode_filter",
    "remove_small_components",
    "fill_holes",
    "MorphologyEngine"
]
