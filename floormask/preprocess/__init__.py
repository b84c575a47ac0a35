"""
Preprocess 模块 - 图像预处理

职责：
- 解码输入图像（ndarray / bytes / 文件路径）
- 缩放到固定的模型输入尺寸，可选对比度拉伸与水平镜像
- 归一化并输出通道优先的 float32 张量
"""

from .preprocessor import Preprocessor, load_image

__all__ = ["Preprocessor", "load_image"]
