"""
ClassifierSession - 分类器会话（一次性懒加载）

第一次 get() 触发加载；并发调用者等待同一个 Future，
不会重复加载。加载完成后句柄只读，可在线程间共享。
"""

from concurrent.futures import Future
import threading
from typing import Callable

import numpy as np
from omegaconf import DictConfig

from ..errors import ModelError
from .base import ClassifierFn


class ClassifierSession:
    """懒加载、可注入的分类器句柄"""

    def __init__(self, loader: Callable[[], ClassifierFn]):
        """
        Args:
            loader: 无参函数，返回已就绪的分类器（可调用对象）
        """
        self._loader = loader
        self._lock = threading.Lock()
        self._future: Future | None = None

    @classmethod
    def from_classifier(cls, classifier: ClassifierFn) -> "ClassifierSession":
        """用现成的分类器构造会话（测试中注入 mock 适配器）"""
        session = cls(lambda: classifier)
        session.get()
        return session

    @property
    def is_ready(self) -> bool:
        future = self._future
        return future is not None and future.done() and future.exception() is None

    def get(self) -> ClassifierFn:
        """
        获取分类器，必要时加载

        Raises:
            ModelError: 加载失败（所有等待者都会收到同一个错误）
        """
        with self._lock:
            future = self._future
            is_owner = future is None
            if is_owner:
                future = Future()
                self._future = future

        if is_owner:
            try:
                classifier = self._loader()
            except Exception as e:
                error = e if isinstance(e, ModelError) else ModelError(f"Failed to load classifier: {e}")
                if error is not e:
                    error.__cause__ = e
                # 失败后允许下一次调用重新加载
                with self._lock:
                    self._future = None
                future.set_exception(error)
            else:
                future.set_result(classifier)

        return future.result()

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """
        执行一次推理

        Raises:
            ModelError: 适配器抛出异常，或输出无法转换为 float32 数组
        """
        classifier = self.get()
        try:
            output = classifier(tensor)
        except ModelError:
            raise
        except Exception as e:
            raise ModelError(f"Classifier inference failed: {e}") from e

        try:
            return np.asarray(output, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise ModelError(
                f"Unsupported classifier output: {type(output).__name__} ({e})"
            ) from e


def create_classifier(cfg: DictConfig) -> ClassifierFn:
    """
    根据 classifier.backend 创建并加载分类器

    Args:
        cfg: 配置对象

    Returns:
        已加载的分类器
    """
    backend = cfg.classifier.backend
    if backend == "onnx":
        from .onnx_classifier import OnnxClassifier
        classifier = OnnxClassifier(cfg)
    elif backend == "segformer":
        from .segformer import SegFormerClassifier
        classifier = SegFormerClassifier(cfg)
    else:
        raise ModelError(f"Unknown classifier backend: {backend}")

    classifier.load()
    return classifier


_SHARED_SESSIONS: dict[tuple, ClassifierSession] = {}
_SHARED_LOCK = threading.Lock()


def shared_session(cfg: DictConfig) -> ClassifierSession:
    """
    进程级共享会话：同一 (backend, 模型, 设备) 只加载一次

    Args:
        cfg: 配置对象

    Returns:
        ClassifierSession（尚未加载，首次 get() 时加载）
    """
    clf_cfg = cfg.classifier
    model_ref = clf_cfg.model_path if clf_cfg.backend == "onnx" else clf_cfg.weights
    key = (clf_cfg.backend, str(model_ref), clf_cfg.get("device", "auto"))

    with _SHARED_LOCK:
        session = _SHARED_SESSIONS.get(key)
        if session is None:
            session = ClassifierSession(lambda: create_classifier(cfg))
            _SHARED_SESSIONS[key] = session
    return session
