#!/usr/bin/env python
"""
floormask Demo - 命令行演示脚本

使用方法:
    python examples/demo.py [input_image] [output_dir] [--config CONFIG] [--tta] [--mock]

示例:
    python examples/demo.py examples/room.jpg examples/out
    python examples/demo.py --mock            # 不需要模型文件，使用合成图像与模拟分类器
"""

import sys
from pathlib import Path

# 添加项目根目录到路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
import numpy as np

from floormask import load_pipeline
from floormask.compositing import encode_png


def create_sample_room(width: int = 640, height: int = 480) -> np.ndarray:
    """
    创建一个示例房间图像（墙面、地面、一张沙发）

    Returns:
        uint8 RGB 图像
    """
    img = np.zeros((height, width, 3), dtype=np.uint8)

    # 墙面（上部 55%）
    horizon = int(height * 0.55)
    img[:horizon] = (215, 205, 190)

    # 地面（下部）- 木地板条纹
    img[horizon:] = (150, 105, 70)
    for y in range(horizon, height, 18):
        img[y:y + 2] = (120, 80, 50)

    # 沙发（压在地面上）
    img[int(height * 0.45):int(height * 0.75), int(width * 0.1):int(width * 0.45)] = (60, 70, 110)

    return img


def mock_classifier(floor_index: int = 3, sofa_index: int = 8, num_classes: int = 16):
    """
    模拟分类器：按示例房间的布局输出 (1,C,S/4,S/4) logits

    Returns:
        tensor -> logits 的函数
    """
    def classify(tensor: np.ndarray) -> np.ndarray:
        size = tensor.shape[-1] // 4
        logits = np.zeros((1, num_classes, size, size), dtype=np.float32)
        horizon = int(size * 0.55)
        logits[0, 0, :horizon] = 6.0                  # 墙
        logits[0, floor_index, horizon:] = 6.0        # 地面
        top, bottom = int(size * 0.45), int(size * 0.75)
        left, right = int(size * 0.1), int(size * 0.45)
        logits[0, sofa_index, top:bottom, left:right] = 8.0
        return logits

    return classify


def main():
    parser = argparse.ArgumentParser(description="floormask Demo")
    parser.add_argument("input", nargs="?", help="输入房间照片路径")
    parser.add_argument("output", nargs="?", default="examples/out", help="输出目录")
    parser.add_argument("--config", default=None, help="配置文件（合并在 floormask/config/default.yaml 之上）")
    parser.add_argument("--tta", action="store_true", help="启用原图 + 镜像 TTA")
    parser.add_argument("--mock", action="store_true", help="使用模拟分类器")

    args = parser.parse_args()

    if args.input:
        image = args.input
    else:
        print("创建示例图像...")
        image = create_sample_room()

    classifier = mock_classifier() if args.mock or not args.input else None
    pipeline = load_pipeline(args.config, classifier=classifier)

    result = pipeline.detect(image, use_tta=args.tta)

    out_dir = Path(args.output)
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "floor_mask.png").write_bytes(encode_png(result.floor_mask_asset))
    (out_dir / "mask.png").write_bytes(encode_png(result.mask))
    if result.debug_overlay_asset is not None:
        (out_dir / "debug_overlay.png").write_bytes(encode_png(result.debug_overlay_asset))

    print(f"尺寸: {result.width}x{result.height}")
    print(f"地面占比: {result.floor_ratio:.1%}")
    print(f"结果已保存到: {out_dir}")


if __name__ == "__main__":
    main()
