"""
集成测试 - 完整 Pipeline（使用模拟分类器，不需要模型文件）
"""

import dataclasses
import io
import sys
from pathlib import Path

# 添加项目根目录到路径
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import numpy as np
import pytest
from PIL import Image

from floormask import (
    CancelToken,
    FloorMaskPipeline,
    FloorMaskResult,
    InputError,
    ModelError,
    PipelineCancelled,
    load_pipeline,
)
from floormask.config import PERMISSIVE_CONFIG_PATH
from floormask.errors import ConfigurationError
from floormask.segmentation import ClassifierSession


FLOOR = 3
NUM_CLASSES = 16
SMALL = {"preprocess": {"input_size": 64}}


def bottom_half_logits(tensor):
    """模拟分类器：下半部分为地面，上半部分为墙（类别 0）"""
    size = tensor.shape[-1] // 4
    logits = np.zeros((1, NUM_CLASSES, size, size), dtype=np.float32)
    logits[0, 0, :size // 2] = 6.0
    logits[0, FLOOR, size // 2:] = 6.0
    return logits


def bottom_half_prob(tensor):
    """模拟单通道概率输出"""
    size = tensor.shape[-1] // 4
    prob = np.full((1, 1, size, size), 0.1, dtype=np.float32)
    prob[0, 0, size // 2:] = 0.9
    return prob


def content_aware_logits(tensor):
    """根据输入内容判断地面：4×4 块内红色通道均值 > 0 即为地面"""
    size = tensor.shape[-1] // 4
    blocks = tensor[0, 0].reshape(size, 4, size, 4).mean(axis=(1, 3))
    logits = np.zeros((1, NUM_CLASSES, size, size), dtype=np.float32)
    logits[0, FLOOR][blocks > 0] = 6.0
    logits[0, 0][blocks <= 0] = 6.0
    return logits


def make_pipeline(classifier=bottom_half_logits, overrides=None, config_path=None):
    merged = {"preprocess": {"input_size": 64}}
    for key, value in (overrides or {}).items():
        merged.setdefault(key, {}).update(value)
    return FloorMaskPipeline(config_path, overrides=merged, classifier=classifier)


@pytest.fixture
def room_image():
    """120×160 的测试图像"""
    return np.random.default_rng(0).integers(0, 256, (120, 160, 3), dtype=np.uint8)


class TestDetect:
    """detect 主流程测试"""

    def test_result_dimensions(self, room_image):
        """测试输出尺寸与原图一致"""
        result = make_pipeline().detect(room_image)

        assert isinstance(result, FloorMaskResult)
        assert (result.width, result.height) == (160, 120)
        assert result.mask.shape == (120, 160)
        assert result.floor_mask_asset.shape == (120, 160, 4)
        assert result.debug_overlay_asset.shape == (120, 160, 4)

    def test_mask_is_binary(self, room_image):
        """测试最终掩码只含 0/255"""
        result = make_pipeline().detect(room_image)
        assert set(np.unique(result.mask)) <= {0, 255}

    def test_floor_region(self, room_image):
        """测试下半部分为地面、上半部分不是"""
        result = make_pipeline().detect(room_image)

        assert result.mask[100, 80] == 255
        assert not result.mask[:40].any()
        assert 0.4 < result.floor_ratio < 0.6

    def test_probability_output(self, room_image):
        """测试单通道概率分类器"""
        result = make_pipeline(classifier=bottom_half_prob).detect(room_image)

        assert result.mask[100, 80] == 255
        assert result.mask[10, 80] == 0

    def test_debug_overlay_disabled(self, room_image):
        """测试关闭调试资源"""
        pipeline = make_pipeline(overrides={"compositing": {"debug_overlay": False}})
        assert pipeline.detect(room_image).debug_overlay_asset is None

    def test_png_bytes_input(self):
        """测试输入为编码后的 PNG 字节"""
        img = np.full((48, 64, 3), 120, dtype=np.uint8)
        buffer = io.BytesIO()
        Image.fromarray(img).save(buffer, format="PNG")

        result = make_pipeline().detect(buffer.getvalue())

        assert (result.width, result.height) == (64, 48)

    def test_rgba_input(self):
        """测试 RGBA 输入"""
        img = np.zeros((40, 40, 4), dtype=np.uint8)
        assert make_pipeline().detect(img).mask.shape == (40, 40)

    def test_result_is_frozen(self, room_image):
        """测试结果对象不可修改"""
        result = make_pipeline().detect(room_image)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.width = 1

    def test_permissive_config(self, room_image):
        """测试使用宽松配置文件"""
        pipeline = make_pipeline(config_path=PERMISSIVE_CONFIG_PATH)

        assert pipeline.cfg.class_map.fusion_mode == "or"
        assert pipeline.detect(room_image).mask[100, 80] == 255

    def test_load_pipeline(self, room_image):
        """测试便捷函数"""
        pipeline = load_pipeline(overrides=SMALL, classifier=bottom_half_logits)
        assert pipeline.detect(room_image).mask.shape == (120, 160)


class TestModelMask:
    """predict_model_mask 测试"""

    def test_model_resolution(self, room_image):
        """测试返回模型分辨率的掩码"""
        mask = make_pipeline().predict_model_mask(room_image)
        assert mask.shape == (16, 16)
        assert mask[12, 8] == 255
        assert mask[2, 8] == 0


class TestErrors:
    """错误传播测试"""

    def test_bad_output_shape(self, room_image):
        """测试分类器输出形状不受支持"""
        pipeline = make_pipeline(classifier=lambda t: np.zeros((1, 150, 128), dtype=np.float32))
        with pytest.raises(ModelError, match=r"\[1, 150, 128\]"):
            pipeline.detect(room_image)

    def test_classifier_raises(self, room_image):
        """测试分类器抛出异常"""
        def broken(tensor):
            raise RuntimeError("device lost")

        with pytest.raises(ModelError, match="device lost"):
            make_pipeline(classifier=broken).detect(room_image)

    def test_unconvertible_output(self, room_image):
        """测试分类器返回无法转换为数组的结果"""
        pipeline = make_pipeline(classifier=lambda t: [[1.0, 2.0], [3.0]])
        with pytest.raises(ModelError, match="list"):
            pipeline.detect(room_image)

    def test_undecodable_bytes(self):
        """测试无法解码的字节"""
        with pytest.raises(InputError):
            make_pipeline().detect(b"definitely not a png")

    def test_invalid_array(self):
        """测试非法数组形状"""
        with pytest.raises(InputError):
            make_pipeline().detect(np.zeros((10, 10), dtype=np.uint8))


class TestTTA:
    """原图 + 镜像 TTA 测试"""

    def test_symmetric_classifier_matches_single(self):
        """测试左右对称的分类器输出：TTA 与单路结果一致"""
        image = np.zeros((128, 160, 3), dtype=np.uint8)
        pipeline = make_pipeline()

        single = pipeline.detect(image, use_tta=False)
        tta = pipeline.detect(image, use_tta=True)

        np.testing.assert_array_equal(tta.mask, single.mask)

    def test_flip_branch_is_unmirrored(self):
        """测试镜像分支还原后与原图分支对齐（非对称内容）"""
        image = np.zeros((64, 64, 3), dtype=np.uint8)
        image[32:, :40] = 255

        pipeline = make_pipeline(
            classifier=content_aware_logits,
            overrides={"preprocess": {"contrast_stretch": False}},
        )

        single = pipeline.detect(image, use_tta=False)
        tta = pipeline.detect(image, use_tta=True)

        assert single.mask[60, 10] == 255
        assert single.mask[60, 60] == 0
        np.testing.assert_array_equal(tta.mask, single.mask)

    def test_tta_never_adds_floor(self, room_image):
        """测试 AND 合并后的地面是单路地面的子集"""
        pipeline = make_pipeline(classifier=content_aware_logits)

        single = pipeline.detect(room_image, use_tta=False).mask == 255
        tta = pipeline.detect(room_image, use_tta=True).mask == 255

        assert np.all(tta <= single)

    def test_unmirror_follows_model_input(self):
        """测试还原镜像以预处理结果的 flipped 标记为准"""
        from floormask.preprocess import Preprocessor

        class AlwaysFlip(Preprocessor):
            def process(self, image_u8, flip=False):
                return super().process(image_u8, flip=True)

        image = np.zeros((64, 64, 3), dtype=np.uint8)
        image[32:, :40] = 255
        overrides = {"preprocess": {"contrast_stretch": False}}

        expected = make_pipeline(classifier=content_aware_logits, overrides=overrides).detect(image)

        pipeline = make_pipeline(classifier=content_aware_logits, overrides=overrides)
        pipeline._preprocessor = AlwaysFlip(pipeline.cfg)
        result = pipeline.detect(image)

        np.testing.assert_array_equal(result.mask, expected.mask)

    def test_tta_from_config(self, room_image):
        """测试配置中开启 TTA"""
        pipeline = make_pipeline(overrides={"pipeline": {"use_tta": True}})
        assert pipeline.detect(room_image).mask.shape == (120, 160)


class TestCancellation:
    """取消测试"""

    def test_cancelled_before_inference(self, room_image):
        """测试已取消的令牌在推理前中止"""
        calls = []

        def classifier(tensor):
            calls.append(1)
            return bottom_half_logits(tensor)

        token = CancelToken()
        token.cancel()

        with pytest.raises(PipelineCancelled, match="preprocessing"):
            make_pipeline(classifier=classifier).detect(room_image, cancel_token=token)
        assert calls == []

    def test_cancelled_during_inference(self, room_image):
        """测试推理过程中取消，推理结束后中止"""
        token = CancelToken()

        def classifier(tensor):
            token.cancel()
            return bottom_half_logits(tensor)

        with pytest.raises(PipelineCancelled, match="inference"):
            make_pipeline(classifier=classifier).detect(room_image, cancel_token=token)

    def test_uncancelled_token(self, room_image):
        """测试未取消的令牌不影响结果"""
        token = CancelToken()
        result = make_pipeline().detect(room_image, cancel_token=token)
        assert not token.cancelled
        assert result.mask.shape == (120, 160)


class TestSessionSharing:
    """分类器会话测试"""

    def test_lazy_single_load(self, room_image):
        """测试第一次 detect 才加载，之后复用"""
        loads = []

        def loader():
            loads.append(1)
            return bottom_half_logits

        pipeline = FloorMaskPipeline(overrides=SMALL, session=ClassifierSession(loader))
        assert loads == []

        pipeline.detect(room_image)
        pipeline.detect(room_image, use_tta=True)
        assert loads == [1]

    def test_classifier_and_session_conflict(self):
        """测试同时传入 classifier 与 session"""
        session = ClassifierSession.from_classifier(bottom_half_logits)
        with pytest.raises(ConfigurationError, match="not both"):
            FloorMaskPipeline(overrides=SMALL, classifier=bottom_half_logits, session=session)

    def test_pipelines_share_session(self, room_image):
        """测试多个 Pipeline 共享同一会话"""
        loads = []

        def loader():
            loads.append(1)
            return bottom_half_logits

        session = ClassifierSession(loader)
        first = FloorMaskPipeline(overrides=SMALL, session=session)
        second = FloorMaskPipeline(overrides=["morphology.erode_iterations=0"], session=session)

        first.detect(room_image)
        second.predict_model_mask(room_image)
        assert loads == [1]

    def test_labels_bind_furniture(self, room_image):
        """测试分类器提供 id2label 时按标签名剔除家具"""
        class LabeledClassifier:
            id2label = {0: "wall", FLOOR: "floor", 5: "rug", 7: "sofa"}

            def __call__(self, tensor):
                logits = bottom_half_logits(tensor)
                # 地面中间放一个"沙发"
                logits[0, 7, 10:14, 6:10] = 9.0
                return logits

        pipeline = make_pipeline(
            classifier=LabeledClassifier(),
            overrides={"class_map": {"furniture_labels": ["sofa"]}},
        )
        mask = pipeline.predict_model_mask(room_image)

        assert pipeline.extractor.furniture_indices == [7]
        assert mask[12, 8] == 0
        assert mask[12, 2] == 255


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
