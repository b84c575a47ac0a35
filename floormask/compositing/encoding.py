"""
边界层编码：RGBA 资源 → PNG 字节 / data URL

Pipeline 本身只返回像素缓冲区，编码由调用方（UI/服务层）按需调用。
"""

import base64
import io

import numpy as np
from PIL import Image


def encode_png(asset: np.ndarray) -> bytes:
    """
    编码为 PNG

    Args:
        asset: uint8 (H,W,4) RGBA 或 (H,W) 灰度

    Returns:
        PNG 字节
    """
    buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(asset, dtype=np.uint8)).save(buffer, format="PNG")
    return buffer.getvalue()


def to_data_url(asset: np.ndarray) -> str:
    """编码为 data:image/png;base64,... （可直接用于 CSS mask-image）"""
    payload = base64.b64encode(encode_png(asset)).decode("ascii")
    return f"data:image/png;base64,{payload}"
