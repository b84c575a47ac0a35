"""
配置加载

所有可调参数集中在一个 DictConfig 中，按模块分节：
preprocess / classifier / class_map / morphology / compositing / pipeline。
包内的 default.yaml 是唯一的默认值来源，作为最底层；
指定的 YAML 文件和覆盖项依次合并在其上。
"""

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from ..errors import ConfigurationError


CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "default.yaml"
PERMISSIVE_CONFIG_PATH = CONFIG_DIR / "permissive.yaml"


class FusionMode(str, Enum):
    """argmax 与 softmax 概率的融合策略"""
    AND = "and"                # argmax==floor 且 P(floor)>=阈值
    OR = "or"                  # argmax==floor 或 P(floor)>=阈值
    THRESHOLD = "threshold"    # 仅 P(floor)>=阈值
    ARGMAX = "argmax"          # 仅 argmax==floor


class ChannelOrder(str, Enum):
    """模型期望的输入通道顺序"""
    RGB = "RGB"
    BGR = "BGR"


def _load_yaml(path: Path) -> DictConfig:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    return OmegaConf.load(path)


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | list[str] | None = None
) -> DictConfig:
    """
    加载并校验配置

    Args:
        config_path: YAML 路径，合并在 default.yaml 之上；为空时只用 default.yaml
        overrides: 覆盖项，dict 或 dotlist（如 ["class_map.fusion_mode=or"]）

    Returns:
        合并后的 DictConfig

    Raises:
        ConfigurationError: 文件不存在、无法解析或参数非法
    """
    try:
        layers = [_load_yaml(DEFAULT_CONFIG_PATH)]
        if config_path is not None and Path(config_path) != DEFAULT_CONFIG_PATH:
            layers.append(_load_yaml(Path(config_path)))

        if isinstance(overrides, dict):
            layers.append(OmegaConf.create(overrides))
        elif overrides:
            layers.append(OmegaConf.from_dotlist(list(overrides)))

        cfg = OmegaConf.merge(*layers)
    except (OmegaConfBaseException, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    try:
        validate_config(cfg)
    except (TypeError, ValueError) as e:
        # 数值项无法转换，如 input_size: "abc"
        raise ConfigurationError(f"Invalid configuration value: {e}") from e
    return cfg


def with_defaults(cfg: DictConfig | dict | None) -> DictConfig:
    """把部分配置（如测试里只含一个分节的配置）补全为完整配置"""
    base = OmegaConf.load(DEFAULT_CONFIG_PATH)
    if cfg is None:
        return base
    return OmegaConf.merge(base, cfg)


def validate_config(cfg: DictConfig) -> None:
    """
    校验配置取值

    Raises:
        ConfigurationError: 任一参数非法
    """
    pre = cfg.preprocess
    if int(pre.input_size) <= 0:
        raise ConfigurationError(f"preprocess.input_size must be positive, got {pre.input_size}")
    _check_enum(ChannelOrder, pre.channel_order, "preprocess.channel_order")
    if len(pre.norm_mean) != 3 or len(pre.norm_std) != 3:
        raise ConfigurationError("preprocess.norm_mean / norm_std must have 3 values")
    if any(float(s) == 0.0 for s in pre.norm_std):
        raise ConfigurationError("preprocess.norm_std must not contain zero")
    if int(pre.stretch_sample_stride) <= 0:
        raise ConfigurationError("preprocess.stretch_sample_stride must be positive")

    cm = cfg.class_map
    _check_enum(FusionMode, cm.fusion_mode, "class_map.fusion_mode")
    if int(cm.floor_class_index) < 0:
        raise ConfigurationError("class_map.floor_class_index must be >= 0")

    morph = cfg.morphology
    for key in ("close_radius", "erode_iterations", "dilate_iterations",
                "vertical_dilate_iterations", "vertical_dilate_radius"):
        if int(morph[key]) < 0:
            raise ConfigurationError(f"morphology.{key} must be >= 0, got {morph[key]}")
    for key in ("min_component_area_ratio", "max_hole_area_ratio"):
        if not 0.0 <= float(morph[key]) <= 1.0:
            raise ConfigurationError(f"morphology.{key} must be in [0, 1], got {morph[key]}")

    comp = cfg.compositing
    if int(comp.blur_width_divisor) <= 0:
        raise ConfigurationError("compositing.blur_width_divisor must be positive")
    if int(comp.blur_min) > int(comp.blur_max):
        raise ConfigurationError("compositing.blur_min must not exceed blur_max")
    if not 0 <= int(comp.debug_alpha) <= 255:
        raise ConfigurationError("compositing.debug_alpha must be in [0, 255]")


def _check_enum(enum_cls: type[Enum], value: Any, name: str) -> None:
    try:
        enum_cls(value)
    except ValueError:
        choices = ", ".join(str(m.value) for m in enum_cls)
        raise ConfigurationError(f"{name} must be one of [{choices}], got {value!r}") from None
