"""
ClassMapExtractor - 分类器输出到初始地面掩码

- (1,1,Hs,Ws) 概率输出：直接按 binary_threshold 二值化
- (1,C,Hs,Ws) logits 输出：argmax 类别与 softmax 地面概率按 fusion_mode 融合，
  可选把家具类别强制置为非地面
"""

import numpy as np
from omegaconf import DictConfig

from ..config import FusionMode
from ..errors import ModelError


def check_output_shape(output: np.ndarray) -> np.ndarray:
    """
    校验分类器输出形状

    Args:
        output: 分类器原始输出

    Returns:
        float32 (1,C,Hs,Ws)

    Raises:
        ModelError: 秩或形状不受支持（错误信息包含实际形状）
    """
    output = np.asarray(output)
    shape = list(output.shape)
    if output.ndim != 4 or shape[0] != 1 or min(shape) < 1:
        raise ModelError(
            f"Unexpected classifier output shape: {shape} (expected [1,1,H,W] or [1,C,H,W])"
        )
    return output.astype(np.float32, copy=False)


def argmax_class_map(logits: np.ndarray) -> np.ndarray:
    """
    类别维 argmax

    Args:
        logits: (C,H,W)

    Returns:
        int64 (H,W)，并列时取较小的类别 ID
    """
    return np.argmax(logits, axis=0)


def softmax_class_prob(logits: np.ndarray, class_index: int) -> np.ndarray:
    """
    数值稳定的 softmax，只返回指定类别的概率

    Args:
        logits: (C,H,W)
        class_index: 类别 ID

    Returns:
        float32 (H,W)
    """
    shifted = logits - logits.max(axis=0, keepdims=True)
    exp = np.exp(shifted)
    return (exp[class_index] / exp.sum(axis=0)).astype(np.float32)


def find_label_ids(id2label: dict[int, str], keywords: list[str]) -> list[int]:
    """
    按标签名关键词查找类别 ID（不硬编码 ID）

    Args:
        id2label: 模型提供的 ID 到标签名映射
        keywords: 小写关键词，子串匹配

    Returns:
        排序后的类别 ID 列表
    """
    ids = []
    for class_id, label in id2label.items():
        label_lower = label.lower()
        if any(keyword in label_lower for keyword in keywords):
            ids.append(int(class_id))
    return sorted(ids)


class ClassMapExtractor:
    """初始地面掩码提取器"""

    def __init__(self, cfg: DictConfig):
        """
        Args:
            cfg: 配置对象，需包含 class_map 分节
        """
        self.cfg = cfg.class_map
        self.floor_index = int(self.cfg.floor_class_index)
        self.furniture_indices = [int(i) for i in self.cfg.furniture_class_indices]
        self.furniture_labels = [str(k).lower() for k in self.cfg.get("furniture_labels", [])]
        self.binary_threshold = float(self.cfg.binary_threshold)
        self.floor_prob_threshold = float(self.cfg.floor_prob_threshold)
        self.fusion_mode = FusionMode(self.cfg.fusion_mode)
        self.subtract_furniture = bool(self.cfg.subtract_furniture)

    def bind_labels(self, id2label: dict[int, str] | None) -> None:
        """
        模型提供标签名时，按 furniture_labels 关键词解析家具类别 ID

        Args:
            id2label: 分类器的 ID 到标签名映射
        """
        if not id2label or not self.furniture_labels:
            return
        ids = find_label_ids(id2label, self.furniture_labels)
        if ids:
            self.furniture_indices = ids
            print(f"[ClassMap] Furniture class IDs from labels: {ids}")

    def extract(self, output: np.ndarray) -> np.ndarray:
        """
        生成模型分辨率下的初始二值掩码

        Args:
            output: 分类器输出 (1,1,Hs,Ws) 或 (1,C,Hs,Ws)

        Returns:
            uint8 (Hs,Ws)，取值 {0,255}
        """
        output = check_output_shape(output)
        num_classes = output.shape[1]

        if num_classes == 1:
            floor = output[0, 0] > self.binary_threshold
        else:
            floor = self._fuse_logits(output[0])

        return np.where(floor, 255, 0).astype(np.uint8)

    def _fuse_logits(self, logits: np.ndarray) -> np.ndarray:
        """
        argmax 与 softmax 概率融合

        Args:
            logits: (C,H,W)

        Returns:
            bool (H,W)
        """
        num_classes = logits.shape[0]
        if self.floor_index >= num_classes:
            raise ModelError(
                f"floor_class_index {self.floor_index} out of range for {num_classes} classes"
            )

        class_map = argmax_class_map(logits)
        is_floor_class = class_map == self.floor_index

        if self.fusion_mode == FusionMode.ARGMAX:
            floor = is_floor_class
        else:
            prob = softmax_class_prob(logits, self.floor_index)
            confident = prob >= self.floor_prob_threshold
            if self.fusion_mode == FusionMode.AND:
                floor = is_floor_class & confident
            elif self.fusion_mode == FusionMode.OR:
                floor = is_floor_class | confident
            else:
                floor = confident

        if self.subtract_furniture and self.furniture_indices:
            floor = floor & ~np.isin(class_map, self.furniture_indices)

        return floor
