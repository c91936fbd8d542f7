"""
Frame-to-frame keypoint tracking.

Each incoming image is run through the configured detector, descriptor
extractor and matcher; the most recent frames are kept in a fixed-size ring
buffer so that every new frame is matched against its predecessor.
"""

import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union, Dict, Any
import numpy as np

from .config import TrackingConfig, ConfigManager, load_config
from .descriptor_extractor import DescriptorFactory, FeatureSet
from .feature_detector import (
    DetectorFactory,
    filter_keypoints_by_region,
    limit_keypoints,
    to_grayscale
)
from .feature_matcher import BaseMatcher, Matches, create_matcher
from .utils import normalize_type_name


logger = logging.getLogger(__name__)


# (記述子, 検出器) の組み合わせのうち OpenCV が扱えないもの
_INVALID_COMBINATIONS = {
    ('orb', 'sift'): "ORB descriptors cannot be computed on SIFT keypoints",
}


def check_combination(detector_type: str, descriptor_type: str):
    """
    検出器と記述子の組み合わせが有効かどうかを確認する

    AKAZE 記述子は AKAZE で検出した特徴点にしか計算できない。
    ORB 記述子は SIFT の特徴点 (オクターブ情報の形式が異なる) に計算できない。

    Raises:
        ValueError: 組み合わせが無効な場合
    """
    detector = normalize_type_name(detector_type)
    descriptor = normalize_type_name(descriptor_type)

    if descriptor == 'akaze' and detector != 'akaze':
        raise ValueError(f"AKAZE descriptors require AKAZE keypoints, "
                         f"got detector '{detector_type}'")

    reason = _INVALID_COMBINATIONS.get((descriptor, detector))
    if reason is not None:
        raise ValueError(reason)


@dataclass
class Frame:
    """1フレーム分の処理結果"""
    index: int
    image_shape: Tuple[int, ...]
    features: FeatureSet
    matches: Optional[Matches] = None  # 前フレームとのマッチ (最初のフレームは None)

    @property
    def keypoints(self):
        return self.features.keypoints

    @property
    def descriptors(self) -> np.ndarray:
        return self.features.descriptors


class DataBuffer:
    """直近のフレームを保持するリングバッファ"""

    def __init__(self, size: int = 2):
        if size < 1:
            raise ValueError("Buffer size must be at least 1")
        self.size = size
        self._frames = deque(maxlen=size)

    def push(self, frame: Frame):
        """フレームを追加 (満杯なら最も古いフレームを捨てる)"""
        self._frames.append(frame)

    def clear(self):
        self._frames.clear()

    @property
    def latest(self) -> Optional[Frame]:
        """最新のフレーム"""
        return self._frames[-1] if self._frames else None

    @property
    def previous(self) -> Optional[Frame]:
        """最新の1つ前のフレーム"""
        return self._frames[-2] if len(self._frames) >= 2 else None

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index: int) -> Frame:
        return self._frames[index]

    def __iter__(self):
        return iter(self._frames)


def _matcher_kwargs(matcher_type: str, matcher_config: Dict[str, Any]) -> Dict[str, Any]:
    """MatcherConfig の辞書をマッチャーの引数に変換"""
    kwargs = {
        'k': matcher_config['k'],
        'ratio_threshold': matcher_config['ratio_threshold'],
    }
    if normalize_type_name(matcher_type) == 'flann':
        kwargs.update({
            'algorithm': matcher_config['flann_algorithm'],
            'trees': matcher_config['flann_trees'],
            'checks': matcher_config['flann_checks'],
        })
    else:
        kwargs['cross_check'] = matcher_config['cross_check']
    return kwargs


class FeatureTracker:
    """検出・記述・マッチングを連続フレームに適用するトラッカー"""

    def __init__(self, config: Optional[TrackingConfig] = None):
        """
        FeatureTrackerの初期化

        Args:
            config: 追跡設定 (省略時はデフォルト設定)

        Raises:
            ValueError: 未知のアルゴリズムや無効な組み合わせが指定された場合
        """
        self.config = config if config is not None else TrackingConfig()
        manager = ConfigManager(self.config)

        check_combination(self.config.detector_type, self.config.descriptor_type)

        self.detector = DetectorFactory.create(
            self.config.detector_type, manager.get_detector_config()
        )
        self.descriptor = DescriptorFactory.create(
            self.config.descriptor_type, manager.get_descriptor_config()
        )
        self.matcher: BaseMatcher = create_matcher(
            self.config.matcher_type,
            selector_type=self.config.selector_type,
            descriptor_category=self.config.descriptor_category,
            **_matcher_kwargs(self.config.matcher_type, manager.get_matcher_config())
        )
        self.buffer = DataBuffer(self.config.buffer_size)
        self._frame_count = 0

        logger.info(f"Tracker: detector={self.detector}, descriptor={self.descriptor}, "
                    f"matcher={self.matcher}")

    @classmethod
    def from_config_file(cls, config_path: Union[str, Path]) -> 'FeatureTracker':
        """YAML設定ファイルからトラッカーを生成"""
        return cls(load_config(config_path))

    def process(self, image: np.ndarray) -> Frame:
        """
        1フレームを処理する

        検出 → 注目領域による絞り込み → 特徴点数の制限 → 記述 → 前フレームとのマッチング

        Args:
            image: 入力画像 (グレースケールまたはカラー)

        Returns:
            Frame: 処理結果
        """
        gray = to_grayscale(image)

        keypoints = self.detector.detect(gray)
        detected = len(keypoints)

        if self.config.focus_region is not None:
            keypoints = filter_keypoints_by_region(keypoints, tuple(self.config.focus_region))

        if self.config.max_keypoints is not None:
            keypoints = limit_keypoints(keypoints, self.config.max_keypoints)

        features = self.descriptor.describe(gray, keypoints)

        frame = Frame(index=self._frame_count, image_shape=gray.shape, features=features)
        self._frame_count += 1
        self.buffer.push(frame)

        previous = self.buffer.previous
        if previous is not None:
            frame.matches = self.matcher.match(previous.features, frame.features)

        logger.debug(f"Frame {frame.index}: {detected} detected, {len(keypoints)} kept, "
                     f"{len(features)} described, "
                     f"{len(frame.matches) if frame.matches is not None else 0} matched")
        return frame

    def reset(self):
        """バッファとフレーム番号をリセット"""
        self.buffer.clear()
        self._frame_count = 0
