"""
FloorMaskPipeline - 地面掩码主处理流水线

房间照片 → 干净、软边的可行走地面掩码，用于叠加虚拟地毯。
每次调用是 (图像, 配置) 的纯函数，唯一跨调用共享的是分类器会话。
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import numpy as np

from .config import load_config
from .context import CancelToken, FloorMaskResult, ModelInput
from .errors import ConfigurationError
from .preprocess import load_image
from .segmentation.base import ClassifierFn
from .segmentation.session import ClassifierSession, shared_session


class FloorMaskPipeline:
    """地面掩码主 Pipeline"""

    def __init__(
        self,
        config_path: str | Path | None = None,
        overrides: dict[str, Any] | list[str] | None = None,
        classifier: ClassifierFn | None = None,
        session: ClassifierSession | None = None
    ):
        """
        初始化 Pipeline

        Args:
            config_path: 配置文件路径，合并在包内 config/default.yaml 之上
            overrides: 配置覆盖项（dict 或 dotlist）
            classifier: 已就绪的分类器（任意 tensor -> array 的可调用对象）
            session: 注入的分类器会话；与 classifier 只能二选一，都为空时使用进程级共享会话

        Raises:
            ConfigurationError: 配置非法，或同时传入 classifier 与 session
        """
        self.cfg = load_config(config_path, overrides)

        if classifier is not None and session is not None:
            raise ConfigurationError("Pass either classifier or session, not both")
        if classifier is not None:
            session = ClassifierSession.from_classifier(classifier)
        self._session = session

        # 初始化各模块（延迟加载）
        self._preprocessor = None
        self._extractor = None
        self._morphology = None
        self._compositor = None
        self._labels_bound = False

    # ==================== 模块懒加载 ====================

    @property
    def preprocessor(self):
        """预处理模块（懒加载）"""
        if self._preprocessor is None:
            from .preprocess import Preprocessor
            self._preprocessor = Preprocessor(self.cfg)
        return self._preprocessor

    @property
    def session(self) -> ClassifierSession:
        """分类器会话（懒加载，进程内共享）"""
        if self._session is None:
            self._session = shared_session(self.cfg)
        return self._session

    @property
    def extractor(self):
        """初始掩码提取模块（懒加载）"""
        if self._extractor is None:
            from .segmentation import ClassMapExtractor
            self._extractor = ClassMapExtractor(self.cfg)
        return self._extractor

    @property
    def morphology(self):
        """形态学清理模块（懒加载）"""
        if self._morphology is None:
            from .morphology import MorphologyEngine
            self._morphology = MorphologyEngine(self.cfg)
        return self._morphology

    @property
    def compositor(self):
        """输出资源模块（懒加载）"""
        if self._compositor is None:
            from .compositing import Compositor
            self._compositor = Compositor(self.cfg)
        return self._compositor

    # ==================== 主处理流程 ====================

    def detect(
        self,
        image: np.ndarray | bytes | str | Path,
        cancel_token: CancelToken | None = None,
        use_tta: bool | None = None
    ) -> FloorMaskResult:
        """
        检测地面并生成输出资源

        Args:
            image: uint8 (H,W,3|4) 图像，或编码后的字节 / 文件路径
            cancel_token: 可选取消令牌
            use_tta: 覆盖配置中的 pipeline.use_tta

        Returns:
            FloorMaskResult

        Raises:
            InputError / ModelError / ConfigurationError / PipelineCancelled
        """
        image_u8 = self.preprocessor.validate(load_image(image))
        height, width = image_u8.shape[:2]

        if use_tta is None:
            use_tta = bool(self.cfg.pipeline.use_tta)

        if use_tta:
            mask = self._detect_tta(image_u8, cancel_token)
        else:
            mask = self._run_branch(image_u8, flip=False, cancel_token=cancel_token)

        floor_mask_asset, debug_overlay_asset = self.compositor.compose(mask)
        print(f"[FloorMask] Mask resized to {width}x{height}")

        return FloorMaskResult(
            mask=mask,
            width=width,
            height=height,
            floor_mask_asset=floor_mask_asset,
            debug_overlay_asset=debug_overlay_asset
        )

    def predict_model_mask(
        self,
        image: np.ndarray | bytes | str | Path,
        flip: bool = False,
        cancel_token: CancelToken | None = None
    ) -> np.ndarray:
        """
        预处理 → 推理 → 初始掩码 → 形态学清理，返回模型分辨率掩码

        Args:
            image: 输入图像
            flip: 是否水平镜像输入（返回的掩码仍是镜像坐标系）
            cancel_token: 可选取消令牌

        Returns:
            uint8 (Hs,Ws) {0,255}
        """
        model_input = self.preprocessor.process(load_image(image), flip=flip)
        return self._infer(model_input, cancel_token)

    def _infer(
        self,
        model_input: ModelInput,
        cancel_token: CancelToken | None
    ) -> np.ndarray:
        """推理 → 初始掩码 → 形态学清理（步骤 2-5）"""
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("preprocessing")

        output = self.session.run(model_input.tensor)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("inference")

        self._bind_labels()
        initial = self.extractor.extract(output)
        refined = self.morphology.refine(initial)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("morphology")
        return refined

    def _run_branch(
        self,
        image_u8: np.ndarray,
        flip: bool,
        cancel_token: CancelToken | None
    ) -> np.ndarray:
        """单路处理（步骤 1-6），返回原图分辨率掩码，镜像分支已还原"""
        from .compositing import flip_horizontal, resize_mask

        model_input = self.preprocessor.process(image_u8, flip=flip)
        model_mask = self._infer(model_input, cancel_token)

        height, width = model_input.orig_size
        mask = resize_mask(model_mask, width, height)
        if model_input.flipped:
            mask = flip_horizontal(mask)
        return mask

    def _detect_tta(
        self,
        image_u8: np.ndarray,
        cancel_token: CancelToken | None
    ) -> np.ndarray:
        """TTA：原图与镜像两路并行，全部完成后按 AND 合并"""
        from .compositing import merge_masks_and

        print("[FloorMask] Running TTA (original + flipped)...")

        # 先在主线程完成模型加载与模块初始化，两路共享
        self.session.get()
        self._bind_labels()
        _ = (self.preprocessor, self.morphology)

        with ThreadPoolExecutor(max_workers=2) as executor:
            original = executor.submit(self._run_branch, image_u8, False, cancel_token)
            flipped = executor.submit(self._run_branch, image_u8, True, cancel_token)
            mask_original = original.result()
            mask_flipped = flipped.result()

        merged = merge_masks_and(mask_original, mask_flipped)
        print("[FloorMask] TTA merge complete")
        return merged

    def _bind_labels(self) -> None:
        """分类器提供 id2label 时，交给提取器解析家具类别"""
        if self._labels_bound:
            return
        id2label = getattr(self.session.get(), "id2label", None)
        self.extractor.bind_labels(id2label)
        self._labels_bound = True


def load_pipeline(
    config_path: str | Path | None = None,
    **kwargs: Any
) -> FloorMaskPipeline:
    """
    便捷函数：加载 Pipeline

    Args:
        config_path: 配置文件路径
        **kwargs: 透传给 FloorMaskPipeline（overrides / classifier / session）

    Returns:
        FloorMaskPipeline 实例
    """
    return FloorMaskPipeline(config_path, **kwargs)
