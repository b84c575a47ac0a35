"""
BaseClassifier - 分类器适配器基类

适配器契约：输入 (1,3,S,S) float32 归一化张量，
输出 (1,1,Hs,Ws) 地面概率或 (1,C,Hs,Ws) 各类别 logits。
任何 `tensor -> array` 的普通函数同样可作为适配器使用。
"""

from abc import ABC, abstractmethod
from typing import Callable

import numpy as np


ClassifierFn = Callable[[np.ndarray], np.ndarray]


class BaseClassifier(ABC):
    """分类器适配器基类"""

    def __init__(self, name: str):
        """
        Args:
            name: 适配器名称（用于日志）
        """
        self.name = name
        # 类别 ID 到标签名的映射（模型提供时才有）
        self.id2label: dict[int, str] | None = None

    @abstractmethod
    def load(self) -> None:
        """加载模型权重"""
        pass

    @abstractmethod
    def predict(self, tensor: np.ndarray) -> np.ndarray:
        """
        推理

        Args:
            tensor: float32 (1,3,S,S)

        Returns:
            float32 (1,1,Hs,Ws) 或 (1,C,Hs,Ws)
        """
        pass

    def __call__(self, tensor: np.ndarray) -> np.ndarray:
        return self.predict(tensor)
