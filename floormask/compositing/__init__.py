"""
Compositing 模块 - 重采样与输出资源

职责：
- 把模型分辨率掩码最近邻放大回原图尺寸并重新二值化
- TTA 的镜像还原与 AND 合并
- 生成软边 alpha 资源与调试叠加资源，并在边界层编码为 PNG
"""

from .resample import resize_mask, flip_horizontal, merge_masks_and
from .compositor import Compositor
from .encoding import encode_png, to_data_url

__all__ = [
    "resize_mask",
    "flip_horizontal",
    "merge_masks_and",
    "Compositor",
    "encode_png",
    "to_data_url"
]
