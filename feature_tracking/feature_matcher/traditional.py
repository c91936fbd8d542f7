import logging
from abc import abstractmethod
from typing import Dict, Any, Optional
import numpy as np
import cv2

from .base import BaseMatcher, Match, Matches, distance_ratio_filter
from ..descriptor_extractor.base import FeatureSet, BINARY, DESCRIPTOR_CATEGORIES
from ..utils import resolve_type_name


logger = logging.getLogger(__name__)

# 最良マッチの選択方法
SELECTORS = ('nn', 'knn')


def _to_match(cv_match) -> Match:
    """OpenCVのDMatchを独自のMatchに変換"""
    return Match(
        query_idx=cv_match.queryIdx,
        train_idx=cv_match.trainIdx,
        distance=float(cv_match.distance)
    )


class DescriptorMatcher(BaseMatcher):
    """OpenCVのDescriptorMatcherを使うマッチャーの共通処理 (NN / KNN 選択)"""

    def __init__(self,
                 selector_type: str = 'nn',
                 k: int = 2,
                 ratio_threshold: float = 0.8,
                 descriptor_category: Optional[str] = None,
                 **kwargs):
        """
        Args:
            selector_type: 'nn' (最良マッチ) または 'knn' (k近傍 + 距離比テスト)
            k: KNN の近傍数
            ratio_threshold: 距離比テストの閾値
            descriptor_category: 'binary' / 'hog' (省略時は FeatureSet から判断)
        """
        super().__init__(**kwargs)
        self.selector_type = resolve_type_name(selector_type, SELECTORS, 'selector')
        if k < 2:
            raise ValueError("k must be at least 2 for the distance ratio test")
        if not 0.0 < ratio_threshold <= 1.0:
            raise ValueError("ratio_threshold must be in (0, 1]")

        self.k = k
        self.ratio_threshold = ratio_threshold
        self.descriptor_category = (
            resolve_type_name(descriptor_category, DESCRIPTOR_CATEGORIES, 'descriptor category')
            if descriptor_category is not None else None
        )

    def resolve_category(self, features: FeatureSet) -> str:
        """マッチングに使う記述子の種類を決める"""
        if self.descriptor_category is not None:
            return self.descriptor_category
        return features.descriptor_category

    def prepare_descriptors(self, descriptors: np.ndarray, category: str) -> np.ndarray:
        """マッチング前の記述子の変換 (サブクラスで上書き)"""
        return descriptors

    @abstractmethod
    def get_matcher(self, category: str):
        """OpenCVのマッチャーを取得 (サブクラスで実装)"""
        pass

    def match(self,
              query_features: FeatureSet,
              train_features: FeatureSet) -> Matches:
        """
        特徴点間のマッチングを行う

        Args:
            query_features: ソース (前フレーム) の特徴点セット
            train_features: 参照 (現フレーム) の特徴点セット

        Returns:
            Matches: マッチング結果
        """
        if (query_features.is_empty() or train_features.is_empty()
                or len(query_features.descriptors) == 0
                or len(train_features.descriptors) == 0):
            return Matches(
                matches=[],
                query_shape=query_features.image_shape,
                train_shape=train_features.image_shape
            )

        category = self.resolve_category(query_features)
        query_desc = self.prepare_descriptors(query_features.descriptors, category)
        train_desc = self.prepare_descriptors(train_features.descriptors, category)
        matcher = self.get_matcher(category)

        try:
            if self.selector_type == 'nn':
                matches = [_to_match(m) for m in matcher.match(query_desc, train_desc)]
            else:
                # 参照側の記述子が k 個未満のときは k を減らす
                k = min(self.k, len(train_desc))
                cv_matches = matcher.knnMatch(query_desc, train_desc, k=k)
                knn_matches = [[_to_match(m) for m in candidates] for candidates in cv_matches]
                matches = distance_ratio_filter(knn_matches, self.ratio_threshold)
        except cv2.error as e:
            logger.error(f"{self.__class__.__name__} matching failed: {e}")
            raise RuntimeError(f"Descriptor matching failed: {e}") from e

        logger.debug(f"{self.__class__.__name__} ({self.selector_type}) found {len(matches)} matches")

        return Matches(
            matches=matches,
            query_shape=query_features.image_shape,
            train_shape=train_features.image_shape
        )

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'selector_type': self.selector_type,
            'k': self.k,
            'ratio_threshold': self.ratio_threshold,
            'descriptor_category': self.descriptor_category
        }


class BruteForceMatcher(DescriptorMatcher):
    """Brute Force マッチャー (バイナリ記述子は Hamming 距離、それ以外は L2 距離)"""

    def __init__(self,
                 cross_check: bool = False,
                 **kwargs):
        """
        BruteForceMatcherの初期化

        Args:
            cross_check: クロスチェックを行うかどうか (NN 選択時のみ)
        """
        super().__init__(**kwargs)
        if cross_check and self.selector_type == 'knn':
            raise ValueError("cross_check cannot be combined with the knn selector")
        self.cross_check = cross_check
        self._matchers = {}

    @staticmethod
    def norm_for(category: str) -> int:
        """記述子の種類に応じた距離尺度"""
        return cv2.NORM_HAMMING if category == BINARY else cv2.NORM_L2

    def get_matcher(self, category: str):
        if category not in self._matchers:
            self._matchers[category] = cv2.BFMatcher(self.norm_for(category), self.cross_check)
        return self._matchers[category]

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        config = super().get_config()
        config['cross_check'] = self.cross_check
        return config


class FLANNMatcher(DescriptorMatcher):
    """FLANN (Fast Library for Approximate Nearest Neighbors) マッチャー"""

    # FLANN のインデックスアルゴリズム番号
    FLANN_INDEX_KDTREE = 1
    FLANN_INDEX_LSH = 6

    def __init__(self,
                 algorithm: str = 'kdtree',
                 trees: int = 4,
                 checks: int = 32,
                 **kwargs):
        """
        FLANNMatcherの初期化

        Args:
            algorithm: アルゴリズム ('kdtree' or 'lsh')
            trees: KDTreeの数 (kdtreeの場合)
            checks: 探索時のチェック回数
        """
        super().__init__(**kwargs)
        self.algorithm = algorithm
        self.trees = trees
        self.checks = checks

        if algorithm == 'kdtree':
            # 浮動小数点記述子用 (バイナリ記述子は float32 に変換する)
            index_params = dict(algorithm=self.FLANN_INDEX_KDTREE, trees=trees)
        elif algorithm == 'lsh':
            # バイナリ記述子用
            index_params = dict(algorithm=self.FLANN_INDEX_LSH,
                                table_number=6,
                                key_size=12,
                                multi_probe_level=1)
        else:
            raise ValueError(f"Unknown algorithm: {algorithm}")

        search_params = dict(checks=checks)

        self.matcher = cv2.FlannBasedMatcher(index_params, search_params)

    def prepare_descriptors(self, descriptors: np.ndarray, category: str) -> np.ndarray:
        """KDTree は float32 の記述子しか扱えないので変換する"""
        if self.algorithm == 'kdtree' and descriptors.dtype != np.float32:
            return descriptors.astype(np.float32)
        if self.algorithm == 'lsh' and descriptors.dtype != np.uint8:
            raise ValueError("FLANN lsh index requires binary (uint8) descriptors")
        return descriptors

    def get_matcher(self, category: str):
        return self.matcher

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        config = super().get_config()
        config.update({
            'algorithm': self.algorithm,
            'trees': self.trees,
            'checks': self.checks
        })
        return config
