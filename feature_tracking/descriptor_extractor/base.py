from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Tuple, Dict, Any, Sequence
import logging
import numpy as np

from ..feature_detector.base import KeyPoint, from_cv_keypoints, to_cv_keypoints, to_grayscale


logger = logging.getLogger(__name__)

# 記述子の種類
BINARY = 'binary'
HOG = 'hog'
DESCRIPTOR_CATEGORIES = (BINARY, HOG)


@dataclass
class FeatureSet:
    """特徴点と記述子をまとめたデータ構造"""
    keypoints: List[KeyPoint]
    descriptors: np.ndarray
    image_shape: Tuple[int, int]
    descriptor_type: str = ''
    descriptor_category: str = BINARY

    def __len__(self) -> int:
        """特徴点の数を返す"""
        return len(self.keypoints)

    def is_empty(self) -> bool:
        """特徴点が空かどうかを判定"""
        return len(self.keypoints) == 0

    @property
    def descriptor_size(self) -> int:
        """記述子の次元 (バイナリ記述子はバイト数)"""
        if self.descriptors.ndim != 2:
            return 0
        return self.descriptors.shape[1]


class BaseDescriptorExtractor(ABC):
    """記述子抽出器の抽象基底クラス"""

    # 記述子の名前と種類 (サブクラスで上書き)
    name: str = ''
    descriptor_category: str = BINARY

    def __init__(self, **kwargs):
        """初期化メソッド"""
        self.config = kwargs

    @property
    @abstractmethod
    def extractor(self):
        """OpenCVの記述子抽出器 (compute() を持つオブジェクト)"""
        pass

    def describe(self, image: np.ndarray, keypoints: Sequence[KeyPoint]) -> FeatureSet:
        """
        特徴点ごとの記述子を計算する

        OpenCVは記述できない特徴点 (画像端に近いものなど) を取り除くことがあるため、
        返り値の keypoints は記述子の行と一対一に対応する特徴点になる。

        Args:
            image: 入力画像 (グレースケールまたはカラー)
            keypoints: 記述する特徴点

        Returns:
            FeatureSet: 特徴点と記述子
        """
        gray = self.preprocess_image(image)

        if len(keypoints) == 0:
            return self._empty_feature_set(gray.shape)

        cv_keypoints, descriptors = self.extractor.compute(gray, to_cv_keypoints(keypoints))

        if descriptors is None or len(cv_keypoints) == 0:
            logger.debug(f"{self.name} described no keypoints out of {len(keypoints)}")
            return self._empty_feature_set(gray.shape)

        described = from_cv_keypoints(cv_keypoints)
        logger.debug(f"{self.name} described {len(described)} of {len(keypoints)} keypoints")

        return FeatureSet(
            keypoints=described,
            descriptors=descriptors,
            image_shape=gray.shape,
            descriptor_type=self.name,
            descriptor_category=self.descriptor_category
        )

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

    def _empty_feature_set(self, image_shape) -> FeatureSet:
        """空の特徴点セットを生成"""
        return FeatureSet(
            keypoints=[],
            descriptors=np.array([]),
            image_shape=image_shape,
            descriptor_type=self.name,
            descriptor_category=self.descriptor_category
        )

    def __str__(self) -> str:
        """オブジェクトの文字列表現"""
        return f"{self.__class__.__name__}({self.get_config()})"

    def __repr__(self) -> str:
        """オブジェクトの詳細表現"""
        return self.__str__()
