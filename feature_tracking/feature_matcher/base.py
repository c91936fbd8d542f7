from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple, Dict, Any, Sequence
import numpy as np

from ..descriptor_extractor.base import FeatureSet
from ..feature_detector.base import KeyPoint


@dataclass
class Match:
    """単一マッチの情報"""
    query_idx: int      # ソース (前フレーム) 特徴点のインデックス
    train_idx: int      # 参照 (現フレーム) 特徴点のインデックス
    distance: float     # 記述子間の距離
    ratio: Optional[float] = None  # 最良距離 / 2番目の距離 (KNN 選択時のみ)


@dataclass
class Matches:
    """マッチング結果を格納するデータ構造"""
    matches: List[Match]
    query_shape: Tuple[int, int]  # ソース画像のサイズ
    train_shape: Tuple[int, int]  # 参照画像のサイズ

    def __len__(self) -> int:
        """マッチ数を返す"""
        return len(self.matches)

    def is_empty(self) -> bool:
        """マッチが空かどうかを判定"""
        return len(self.matches) == 0

    def get_matched_points(self,
                           query_keypoints: Sequence[KeyPoint],
                           train_keypoints: Sequence[KeyPoint]) -> Tuple[np.ndarray, np.ndarray]:
        """
        マッチした点の座標を取得

        Args:
            query_keypoints: ソース側の特徴点
            train_keypoints: 参照側の特徴点

        Returns:
            tuple: (query_points, train_points) それぞれ [N, 2] の float32 配列
        """
        if self.is_empty():
            return np.empty((0, 2), dtype=np.float32), np.empty((0, 2), dtype=np.float32)

        query_points = np.array(
            [query_keypoints[m.query_idx].pt for m in self.matches], dtype=np.float32
        )
        train_points = np.array(
            [train_keypoints[m.train_idx].pt for m in self.matches], dtype=np.float32
        )
        return query_points, train_points

    def filter_by_distance(self, max_distance: float) -> 'Matches':
        """
        距離によるフィルタリング

        Args:
            max_distance: 最大距離

        Returns:
            Matches: フィルタリングされたマッチ
        """
        return Matches(
            matches=[m for m in self.matches if m.distance <= max_distance],
            query_shape=self.query_shape,
            train_shape=self.train_shape
        )

    def get_top_k(self, k: int) -> 'Matches':
        """
        上位k個のマッチを取得（距離の昇順）

        Args:
            k: 取得する数

        Returns:
            Matches: 上位k個のマッチ
        """
        return Matches(
            matches=sorted(self.matches, key=lambda m: m.distance)[:k],
            query_shape=self.query_shape,
            train_shape=self.train_shape
        )


class BaseMatcher(ABC):
    """特徴マッチングの抽象基底クラス"""

    def __init__(self, **kwargs):
        """初期化メソッド"""
        self.config = kwargs

    @abstractmethod
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
        pass

    @abstractmethod
    def get_config(self) -> Dict[str, Any]:
        """
        現在の設定を取得

        Returns:
            Dict[str, Any]: 設定辞書
        """
        pass

    def __str__(self) -> str:
        """オブジェクトの文字列表現"""
        return f"{self.__class__.__name__}({self.get_config()})"

    def __repr__(self) -> str:
        """オブジェクトの詳細表現"""
        return self.__str__()


def distance_ratio_filter(knn_matches: Sequence[Sequence[Match]],
                          ratio: float = 0.8) -> List[Match]:
    """
    距離比テストで曖昧なマッチを除去する

    最良マッチの距離と2番目の距離の比が ratio 以下のときだけ最良マッチを採用する。
    候補が1つしかない場合はそのまま採用し、候補がない場合は何もしない。
    2番目の距離が 0 の場合は比が定義できないので採用しない。

    Args:
        knn_matches: 各ソース点に対する距離昇順の候補 (通常は k=2)
        ratio: 距離比の閾値

    Returns:
        List[Match]: 採用されたマッチ (ratio が設定される)
    """
    good_matches = []

    for candidates in knn_matches:
        if len(candidates) >= 2:
            best, second = candidates[0], candidates[1]
            if second.distance <= 0:
                continue
            distance_ratio = best.distance / second.distance
            if distance_ratio <= ratio:
                good_matches.append(Match(
                    query_idx=best.query_idx,
                    train_idx=best.train_idx,
                    distance=best.distance,
                    ratio=distance_ratio
                ))
        elif len(candidates) == 1:
            good_matches.append(candidates[0])

    return good_matches


def compute_matching_statistics(matches: Matches) -> Dict[str, Any]:
    """
    マッチング統計情報を計算

    Args:
        matches: マッチング結果

    Returns:
        Dict[str, Any]: 統計情報
    """
    if matches.is_empty():
        return {
            'num_matches': 0,
            'mean_distance': 0.0,
            'std_distance': 0.0
        }

    distances = np.array([m.distance for m in matches.matches], dtype=np.float64)

    return {
        'num_matches': len(matches),
        'mean_distance': float(np.mean(distances)),
        'std_distance': float(np.std(distances)),
        'min_distance': float(np.min(distances)),
        'max_distance': float(np.max(distances))
    }
