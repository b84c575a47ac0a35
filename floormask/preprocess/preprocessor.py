"""
Preprocessor - 图像预处理器

核心功能：
- resize: 缩放到 S×S（默认 512），缩小用 INTER_AREA，放大用 INTER_LINEAR
- contrast_stretch: 按 2%/98% 分位亮度线性拉伸，提升对光照的鲁棒性
- normalize: (v/255 - mean) / std，输出 (1,3,S,S) float32
- flip: TTA 时在缩放前水平镜像
"""

import io
from pathlib import Path

import cv2
import numpy as np
from omegaconf import DictConfig
from PIL import Image, UnidentifiedImageError

from ..config import ChannelOrder
from ..context import ModelInput
from ..errors import InputError


# ITU-R BT.601 亮度权重
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)


def load_image(source: np.ndarray | bytes | str | Path) -> np.ndarray:
    """
    解码输入图像

    Args:
        source: uint8 (H,W,3|4) 数组、编码后的图像字节，或图像文件路径

    Returns:
        uint8 (H,W,3) 或 (H,W,4) RGB(A) 图像

    Raises:
        InputError: 无法解码
    """
    if isinstance(source, np.ndarray):
        return source
    if not isinstance(source, (bytes, bytearray, str, Path)):
        raise InputError(f"Unsupported image source: {type(source).__name__}")

    try:
        if isinstance(source, (bytes, bytearray)):
            with Image.open(io.BytesIO(source)) as img:
                return np.array(img.convert("RGB"))
        with Image.open(Path(source)) as img:
            return np.array(img.convert("RGB"))
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise InputError(f"Failed to decode image: {e}") from e


class Preprocessor:
    """图像预处理器"""

    def __init__(self, cfg: DictConfig):
        """
        初始化预处理器

        Args:
            cfg: 配置对象，需包含 preprocess 分节
        """
        self.cfg = cfg.preprocess
        self.input_size = int(self.cfg.input_size)
        self.channel_order = ChannelOrder(self.cfg.channel_order)
        self.mean = np.array(self.cfg.norm_mean, dtype=np.float32)
        self.std = np.array(self.cfg.norm_std, dtype=np.float32)
        self.contrast_stretch = bool(self.cfg.contrast_stretch)
        self.sample_stride = int(self.cfg.get("stretch_sample_stride", 17))
        self.low_percentile = float(self.cfg.get("stretch_low_percentile", 0.02))
        self.high_percentile = float(self.cfg.get("stretch_high_percentile", 0.98))

    def process(self, image_u8: np.ndarray, flip: bool = False) -> ModelInput:
        """
        预处理输入图像

        Args:
            image_u8: 输入图像，uint8 (H,W,3) RGB 或 (H,W,4) RGBA
            flip: 是否水平镜像（TTA 第二路）

        Returns:
            ModelInput，tensor 为 float32 (1,3,S,S)

        Raises:
            InputError: 如果输入图像格式不正确
        """
        rgb = self.validate(image_u8)
        orig_h, orig_w = rgb.shape[:2]

        if flip:
            rgb = rgb[:, ::-1]

        resized = self._resize(rgb, self.input_size).astype(np.float32)

        if self.contrast_stretch:
            resized = self._contrast_stretch(resized)

        tensor = self._normalize(resized)

        return ModelInput(
            tensor=tensor,
            orig_size=(orig_h, orig_w),
            flipped=flip
        )

    @staticmethod
    def validate(image_u8: np.ndarray) -> np.ndarray:
        """
        校验并统一为 uint8 (H,W,3) RGB

        Raises:
            InputError: 图像为空或形状不支持
        """
        if image_u8 is None:
            raise InputError("输入图像不能为空")
        image_u8 = np.asarray(image_u8)
        if image_u8.ndim != 3 or image_u8.shape[2] not in (3, 4):
            raise InputError(f"输入图像必须是 (H,W,3) 或 (H,W,4) 格式，当前: {image_u8.shape}")
        if image_u8.shape[0] == 0 or image_u8.shape[1] == 0:
            raise InputError(f"输入图像尺寸非法: {image_u8.shape}")
        if image_u8.dtype != np.uint8:
            image_u8 = np.clip(image_u8, 0, 255).astype(np.uint8)

        # RGBA 直接丢弃 alpha
        return image_u8[:, :, :3]

    @staticmethod
    def _resize(image: np.ndarray, size: int) -> np.ndarray:
        """缩放到 size×size，缩小时 INTER_AREA 效果更好"""
        h, w = image.shape[:2]
        if (h, w) == (size, size):
            return np.ascontiguousarray(image)

        interpolation = cv2.INTER_AREA if (h >= size and w >= size) else cv2.INTER_LINEAR
        return cv2.resize(
            np.ascontiguousarray(image),
            (size, size),  # cv2.resize 使用 (width, height)
            interpolation=interpolation
        )

    def _contrast_stretch(self, image: np.ndarray) -> np.ndarray:
        """
        分位数对比度拉伸

        每隔 stride 个像素采样亮度，取低/高分位作为上下界，
        三个通道用同一线性映射拉伸到 [0,255]。

        Args:
            image: float32 (S,S,3) RGB，范围 [0,255]

        Returns:
            拉伸后的 float32 图像
        """
        pixels = image.reshape(-1, 3)
        samples = np.sort(pixels[::self.sample_stride] @ LUMA_WEIGHTS)

        n = samples.shape[0]
        low = float(samples[min(int(n * self.low_percentile), n - 1)])
        high = float(samples[min(int(n * self.high_percentile), n - 1)])
        span = max(1.0, high - low)

        stretched = (image - low) / span * 255.0
        return np.clip(stretched, 0.0, 255.0)

    def _normalize(self, image: np.ndarray) -> np.ndarray:
        """
        ImageNet 风格归一化并转为 CHW

        Args:
            image: float32 (S,S,3) RGB，范围 [0,255]

        Returns:
            float32 (1,3,S,S)
        """
        normalized = (image / 255.0 - self.mean) / self.std
        if self.channel_order == ChannelOrder.BGR:
            normalized = normalized[:, :, ::-1]

        chw = normalized.transpose(2, 0, 1)[np.newaxis]
        return np.ascontiguousarray(chw, dtype=np.float32)
