from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Dict, Any, Iterable
import math
import numpy as np
import cv2


@dataclass
class KeyPoint:
    """特徴点の情報を格納するデータクラス"""
    x: float
    y: float
    size: float
    angle: float = -1.0
    response: float = 0.0
    octave: int = 0
    class_id: int = -1

    @property
    def pt(self):
        """座標 (x, y)"""
        return (self.x, self.y)

    def overlap(self, other: 'KeyPoint') -> float:
        """
        2つの特徴点の近傍領域 (直径 size の円) の重なり率を計算する

        交差面積 / 和集合面積 を返す。一方の円が他方に完全に含まれる場合は
        面積比、離れている場合は 0 となる (cv::KeyPoint::overlap と同じ定義)。

        Args:
            other: 比較する特徴点

        Returns:
            float: 重なり率 (0.0 - 1.0)
        """
        a = self.size * 0.5
        b = other.size * 0.5
        a_2 = a * a
        b_2 = b * b
        c = math.hypot(self.x - other.x, self.y - other.y)

        if min(a, b) + c <= max(a, b):
            if max(a_2, b_2) == 0:
                return 0.0
            return min(a_2, b_2) / max(a_2, b_2)

        if c < a + b:
            c_2 = c * c
            cos_alpha = (b_2 + c_2 - a_2) / (other.size * c)
            cos_beta = (a_2 + c_2 - b_2) / (self.size * c)
            # 丸め誤差で [-1, 1] を外れることがある
            alpha = math.acos(max(-1.0, min(1.0, cos_alpha)))
            beta = math.acos(max(-1.0, min(1.0, cos_beta)))

            segment_area_a = a_2 * beta
            segment_area_b = b_2 * alpha
            triangle_area_a = a_2 * math.sin(beta) * cos_beta
            triangle_area_b = b_2 * math.sin(alpha) * cos_alpha

            intersection = segment_area_a + segment_area_b - triangle_area_a - triangle_area_b
            union = (a_2 + b_2) * math.pi - intersection
            return intersection / union

        return 0.0

    def to_cv(self) -> cv2.KeyPoint:
        """OpenCVのKeyPointに変換"""
        return cv2.KeyPoint(float(self.x), float(self.y), float(self.size),
                            float(self.angle), float(self.response),
                            int(self.octave), int(self.class_id))

    @classmethod
    def from_cv(cls, kp: cv2.KeyPoint) -> 'KeyPoint':
        """OpenCVのKeyPointから生成"""
        return cls(
            x=kp.pt[0],
            y=kp.pt[1],
            size=kp.size,
            angle=kp.angle,
            response=kp.response,
            octave=kp.octave,
            class_id=kp.class_id
        )


def from_cv_keypoints(cv_keypoints: Iterable[cv2.KeyPoint]) -> List[KeyPoint]:
    """OpenCVのKeyPointのリストを独自のKeyPointに変換"""
    return [KeyPoint.from_cv(kp) for kp in cv_keypoints]


def to_cv_keypoints(keypoints: Iterable[KeyPoint]) -> List[cv2.KeyPoint]:
    """独自のKeyPointのリストをOpenCVのKeyPointに変換"""
    return [kp.to_cv() for kp in keypoints]


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    入力画像をグレースケールに変換する

    Args:
        image: 入力画像 (グレースケールまたはBGR)

    Returns:
        np.ndarray: グレースケール画像

    Raises:
        ValueError: 画像が空、または形状が不正な場合
    """
    if image is None or image.size == 0:
        raise ValueError("Input image is empty")

    if image.ndim == 3:
        if image.shape[2] == 1:
            return image[:, :, 0]
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim != 2:
        raise ValueError(f"Unsupported image shape: {image.shape}")
    return image


class BaseDetector(ABC):
    """特徴点検出器の抽象基底クラス"""

    def __init__(self, **kwargs):
        """初期化メソッド"""
        self.config = kwargs

    @abstractmethod
    def detect(self, image: np.ndarray) -> List[KeyPoint]:
        """
        画像から特徴点を検出する

        Args:
            image: 入力画像 (グレースケールまたはカラー)

        Returns:
            List[KeyPoint]: 検出された特徴点
        """
        pass

    @abstractmethod
    def get_config(self) -> Dict[str, Any]:
        """
        現在の設定を取得する

        Returns:
            Dict[str, Any]: 設定辞書
        """
        pass

    def preprocess_image(self, image: np.ndarray) -> np.ndarray:
        """画像の前処理 (グレースケール化)"""
        return to_grayscale(image)

    def __str__(self) -> str:
        """オブジェクトの文字列表現"""
        return f"{self.__class__.__name__}({self.get_config()})"

    def __repr__(self) -> str:
        """オブジェクトの詳細表現"""
        return self.__str__()
