"""
Segmentation 模块 - 分类器与初始掩码

职责：
- 分类器适配器（ONNX Runtime / SegFormer），一次性懒加载的共享会话
- 校验分类器输出形状
- 融合 argmax 与 softmax 概率生成初始地面掩码，可选剔除家具
"""

from .base import BaseClassifier
from .class_map import ClassMapExtractor, check_output_shape
from .session import ClassifierSession, create_classifier, shared_session

__all__ = [
    "BaseClassifier",
    "ClassMapExtractor",
    "check_output_shape",
    "ClassifierSession",
    "create_classifier",
    "shared_session"
]
