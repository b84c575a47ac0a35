"""
OnnxClassifier - 基于 onnxruntime 的分类器适配器

加载导出的 ONNX 分割模型（如 SegFormer-ADE20K 导出版），
以第一个输入节点喂入张量，读取第一个输出节点。
"""

from pathlib import Path

import numpy as np
from omegaconf import DictConfig

from ..errors import ModelError
from .base import BaseClassifier


class OnnxClassifier(BaseClassifier):
    """ONNX Runtime 推理适配器"""

    def __init__(self, cfg: DictConfig):
        """
        Args:
            cfg: 配置对象，需包含 classifier.model_path
        """
        super().__init__("onnx")
        self.cfg = cfg.classifier
        self.model_path = Path(self.cfg.model_path)
        self.device = self.cfg.get("device", "auto")
        self._session = None
        self._input_name = None
        self._output_name = None

    def load(self) -> None:
        """创建 InferenceSession"""
        try:
            import onnxruntime as ort
        except ImportError as e:
            raise ModelError(
                "onnxruntime is not installed. Install it with: pip install floormask[onnx]"
            ) from e

        if not self.model_path.exists():
            raise ModelError(f"ONNX model not found: {self.model_path}")

        print(f"[Classifier] Loading ONNX model: {self.model_path}")

        available = ort.get_available_providers()
        if self.device == "cpu" or "CUDAExecutionProvider" not in available:
            providers = ["CPUExecutionProvider"]
        else:
            providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]

        try:
            self._session = ort.InferenceSession(str(self.model_path), providers=providers)
        except Exception as e:
            raise ModelError(f"Failed to load ONNX model from {self.model_path}: {e}") from e

        self._input_name = self._session.get_inputs()[0].name
        self._output_name = self._session.get_outputs()[0].name
        print(f"[Classifier] Model loaded ({providers[0]})")

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        if self._session is None:
            self.load()
        outputs = self._session.run([self._output_name], {self._input_name: tensor})
        return np.asarray(outputs[0], dtype=np.float32)
