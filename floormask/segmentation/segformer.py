"""
SegFormerClassifier - 基于 SegFormer 的分类器适配器

使用 HuggingFace Transformers 加载 ADE20K 预训练的 SegFormer，
直接把预处理后的归一化张量作为 pixel_values，输出 (1,150,S/4,S/4) logits。
ADE20K 中 floor 的类别 ID 为 3。
"""

import numpy as np
import torch
from omegaconf import DictConfig

from ..errors import ModelError
from .base import BaseClassifier


class SegFormerClassifier(BaseClassifier):
    """SegFormer 推理适配器"""

    def __init__(self, cfg: DictConfig):
        """
        Args:
            cfg: 配置对象，需包含 classifier.weights 和 classifier.device
        """
        super().__init__("segformer")
        self.cfg = cfg.classifier
        self.weights = self.cfg.weights
        self.device = self._resolve_device(self.cfg.get("device", "auto"))
        self._model = None

    @staticmethod
    def _resolve_device(device: str) -> torch.device:
        """
        解析设备配置

        Args:
            device: "auto" | "cuda" | "cpu"
        """
        if device == "auto":
            return torch.device("cuda" if torch.cuda.is_available() else "cpu")
        return torch.device(device)

    def load(self) -> None:
        """加载 SegFormer 模型"""
        from transformers import SegformerForSemanticSegmentation

        print(f"[Classifier] Loading SegFormer: {self.weights}")

        try:
            self._model = SegformerForSemanticSegmentation.from_pretrained(
                self.weights,
                use_safetensors=True
            )
        except (OSError, ValueError) as e:
            raise ModelError(f"Failed to load SegFormer weights '{self.weights}': {e}") from e

        self._model.to(self.device)
        self._model.eval()

        # 转换键为 int（有时是字符串）
        id2label = self._model.config.id2label
        self.id2label = {int(k): v for k, v in id2label.items()}

        print(f"[Classifier] Model loaded on {self.device}")
        print(f"[Classifier] Number of classes: {len(self.id2label)}")

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        if self._model is None:
            self.load()

        pixel_values = torch.from_numpy(tensor).to(self.device)
        with torch.no_grad():
            logits = self._model(pixel_values=pixel_values).logits  # (1, C, H', W')

        return logits.float().cpu().numpy()
