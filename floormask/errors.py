"""
错误类型定义

Pipeline 不做任何内部重试：任一阶段失败即中止本次调用，
并把带类型的错误抛给调用方（由 UI 层决定回退策略）。
"""


class FloorMaskError(Exception):
    """地面掩码流水线的错误基类"""


class InputError(FloorMaskError):
    """输入图像无法解码或尺寸非法"""


class ConfigurationError(FloorMaskError):
    """配置非法，或所需的缓冲区/渲染资源不可用"""


class ModelError(FloorMaskError):
    """分类器加载/推理失败，或返回了不支持的张量形状"""


class PipelineCancelled(FloorMaskError):
    """调用方通过 CancelToken 取消了本次处理"""
