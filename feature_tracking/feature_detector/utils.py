import numpy as np
import cv2
from typing import List, Tuple, Union, Sequence
from pathlib import Path

from .base import KeyPoint


def load_image(image_path: Union[str, Path],
               color_mode: str = 'grayscale') -> np.ndarray:
    """
    画像ファイルを読み込む

    Args:
        image_path: 画像ファイルのパス
        color_mode: 色モード ('grayscale', 'color', 'unchanged')

    Returns:
        np.ndarray: 読み込まれた画像

    Raises:
        FileNotFoundError: 画像ファイルが見つからない場合
        ValueError: 画像の読み込みに失敗した場合
    """
    image_path = Path(image_path)

    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    color_flags = {
        'grayscale': cv2.IMREAD_GRAYSCALE,
        'color': cv2.IMREAD_COLOR,
        'unchanged': cv2.IMREAD_UNCHANGED
    }

    if color_mode not in color_flags:
        raise ValueError(f"Invalid color_mode: {color_mode}. "
                         f"Available modes: {list(color_flags.keys())}")

    image = cv2.imread(str(image_path), color_flags[color_mode])

    if image is None:
        raise ValueError(f"Failed to load image: {image_path}")

    return image


def filter_keypoints_by_region(keypoints: Sequence[KeyPoint],
                               region: Tuple[int, int, int, int]) -> List[KeyPoint]:
    """
    矩形領域内の特徴点だけを残す

    Args:
        keypoints: 入力特徴点
        region: 領域 (x, y, width, height)

    Returns:
        List[KeyPoint]: 領域内の特徴点 (順序は保持)
    """
    x, y, w, h = region
    if w < 0 or h < 0:
        raise ValueError(f"Region width and height must be non-negative: {region}")

    return [kp for kp in keypoints if x <= kp.x < x + w and y <= kp.y < y + h]


def limit_keypoints(keypoints: Sequence[KeyPoint],
                    max_keypoints: int) -> List[KeyPoint]:
    """
    特徴点数の制限 (応答値の大きい順、同値なら元の順序)

    Args:
        keypoints: 入力特徴点
        max_keypoints: 最大特徴点数

    Returns:
        List[KeyPoint]: 制限された特徴点
    """
    if max_keypoints < 0:
        raise ValueError("max_keypoints must be non-negative")

    if len(keypoints) <= max_keypoints:
        return list(keypoints)

    # sorted は安定なので同じ応答値の特徴点は検出順のまま
    return sorted(keypoints, key=lambda kp: kp.response, reverse=True)[:max_keypoints]


def compute_keypoint_statistics(keypoints: Sequence[KeyPoint]) -> dict:
    """
    特徴点の統計情報 (個数、近傍サイズと応答値の分布) を計算

    Args:
        keypoints: 特徴点

    Returns:
        dict: 統計情報
    """
    if len(keypoints) == 0:
        return {
            'num_keypoints': 0,
            'mean_size': 0.0,
            'std_size': 0.0,
            'min_size': 0.0,
            'max_size': 0.0,
            'mean_response': 0.0,
            'std_response': 0.0,
            'min_response': 0.0,
            'max_response': 0.0
        }

    sizes = np.array([kp.size for kp in keypoints], dtype=np.float64)
    responses = np.array([kp.response for kp in keypoints], dtype=np.float64)

    return {
        'num_keypoints': len(keypoints),
        'mean_size': float(np.mean(sizes)),
        'std_size': float(np.std(sizes)),
        'min_size': float(np.min(sizes)),
        'max_size': float(np.max(sizes)),
        'mean_response': float(np.mean(responses)),
        'std_response': float(np.std(responses)),
        'min_response': float(np.min(responses)),
        'max_response': float(np.max(responses))
    }
