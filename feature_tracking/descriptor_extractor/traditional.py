from typing import Dict, Any
import cv2

from .base import BaseDescriptorExtractor, BINARY, HOG
from ..feature_detector.traditional import create_akaze, create_brisk, create_orb, create_sift


def _require_xfeatures2d(name: str):
    """cv2.xfeatures2d (opencv-contrib-python) を取得"""
    try:
        return cv2.xfeatures2d
    except AttributeError:
        raise ImportError(f"{name} requires opencv-contrib-python. "
                          "Install with: pip install opencv-contrib-python")


class BRISKDescriptor(BaseDescriptorExtractor):
    """BRISK 記述子抽出器"""

    name = 'brisk'
    descriptor_category = BINARY

    def __init__(self,
                 threshold: int = 30,
                 octaves: int = 3,
                 pattern_scale: float = 1.0,
                 **kwargs):
        """
        BRISKDescriptorの初期化

        Args:
            threshold: FAST/AGAST 検出閾値
            octaves: 検出オクターブ数
            pattern_scale: サンプリングパターンのスケール
        """
        super().__init__(**kwargs)
        self.threshold = threshold
        self.octaves = octaves
        self.pattern_scale = pattern_scale

        self._extractor = create_brisk(self.get_config())

    @property
    def extractor(self):
        return self._extractor

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'threshold': self.threshold,
            'octaves': self.octaves,
            'pattern_scale': self.pattern_scale
        }


class BRIEFDescriptor(BaseDescriptorExtractor):
    """BRIEF 記述子抽出器 (opencv-contrib-pythonが必要)"""

    name = 'brief'
    descriptor_category = BINARY

    def __init__(self,
                 descriptor_size: int = 32,
                 use_orientation: bool = False,
                 **kwargs):
        """
        BRIEFDescriptorの初期化

        Args:
            descriptor_size: 記述子のバイト数 (16, 32, 64)
            use_orientation: 特徴点の方向を使用するかどうか
        """
        super().__init__(**kwargs)
        if descriptor_size not in (16, 32, 64):
            raise ValueError("BRIEF descriptor_size must be 16, 32 or 64")

        self.descriptor_size = descriptor_size
        self.use_orientation = use_orientation

        xfeatures2d = _require_xfeatures2d('BRIEF')
        self._extractor = xfeatures2d.BriefDescriptorExtractor_create(
            descriptor_size, use_orientation
        )

    @property
    def extractor(self):
        return self._extractor

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'descriptor_size': self.descriptor_size,
            'use_orientation': self.use_orientation
        }


class ORBDescriptor(BaseDescriptorExtractor):
    """ORB 記述子抽出器"""

    name = 'orb'
    descriptor_category = BINARY

    def __init__(self,
                 n_features: int = 500,
                 scale_factor: float = 1.2,
                 n_levels: int = 8,
                 edge_threshold: int = 31,
                 first_level: int = 0,
                 wta_k: int = 2,
                 patch_size: int = 31,
                 fast_threshold: int = 20,
                 **kwargs):
        """ORBDescriptorの初期化 (パラメータは ORBDetector と同じ)"""
        super().__init__(**kwargs)
        self.n_features = n_features
        self.scale_factor = scale_factor
        self.n_levels = n_levels
        self.edge_threshold = edge_threshold
        self.first_level = first_level
        self.wta_k = wta_k
        self.patch_size = patch_size
        self.fast_threshold = fast_threshold

        self._extractor = create_orb(self.get_config())

    @property
    def extractor(self):
        return self._extractor

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'n_features': self.n_features,
            'scale_factor': self.scale_factor,
            'n_levels': self.n_levels,
            'edge_threshold': self.edge_threshold,
            'first_level': self.first_level,
            'wta_k': self.wta_k,
            'patch_size': self.patch_size,
            'fast_threshold': self.fast_threshold
        }


class FREAKDescriptor(BaseDescriptorExtractor):
    """FREAK 記述子抽出器 (opencv-contrib-pythonが必要)"""

    name = 'freak'
    descriptor_category = BINARY

    def __init__(self,
                 orientation_normalized: bool = True,
                 scale_normalized: bool = True,
                 pattern_scale: float = 22.0,
                 n_octaves: int = 4,
                 **kwargs):
        """
        FREAKDescriptorの初期化

        Args:
            orientation_normalized: 方向の正規化を行うかどうか
            scale_normalized: スケールの正規化を行うかどうか
            pattern_scale: サンプリングパターンのスケール
            n_octaves: 特徴点がカバーするオクターブ数
        """
        super().__init__(**kwargs)
        self.orientation_normalized = orientation_normalized
        self.scale_normalized = scale_normalized
        self.pattern_scale = pattern_scale
        self.n_octaves = n_octaves

        xfeatures2d = _require_xfeatures2d('FREAK')
        self._extractor = xfeatures2d.FREAK_create(
            orientation_normalized, scale_normalized, pattern_scale, n_octaves
        )

    @property
    def extractor(self):
        return self._extractor

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'orientation_normalized': self.orientation_normalized,
            'scale_normalized': self.scale_normalized,
            'pattern_scale': self.pattern_scale,
            'n_octaves': self.n_octaves
        }


class AKAZEDescriptor(BaseDescriptorExtractor):
    """AKAZE 記述子抽出器 (AKAZEで検出した特徴点のみ記述可能)"""

    name = 'akaze'
    descriptor_category = BINARY

    def __init__(self,
                 threshold: float = 0.001,
                 n_octaves: int = 4,
                 n_octave_layers: int = 4,
                 **kwargs):
        """AKAZEDescriptorの初期化 (パラメータは AKAZEDetector と同じ)"""
        super().__init__(**kwargs)
        self.threshold = threshold
        self.n_octaves = n_octaves
        self.n_octave_layers = n_octave_layers

        self._extractor = create_akaze(self.get_config())

    @property
    def extractor(self):
        return self._extractor

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'threshold': self.threshold,
            'n_octaves': self.n_octaves,
            'n_octave_layers': self.n_octave_layers
        }


class SIFTDescriptor(BaseDescriptorExtractor):
    """SIFT 記述子抽出器 (勾配ヒストグラム)"""

    name = 'sift'
    descriptor_category = HOG

    def __init__(self,
                 n_features: int = 0,
                 n_octave_layers: int = 3,
                 contrast_threshold: float = 0.04,
                 edge_threshold: float = 10,
                 sigma: float = 1.6,
                 **kwargs):
        """SIFTDescriptorの初期化 (パラメータは SIFTDetector と同じ)"""
        super().__init__(**kwargs)
        self.n_features = n_features
        self.n_octave_layers = n_octave_layers
        self.contrast_threshold = contrast_threshold
        self.edge_threshold = edge_threshold
        self.sigma = sigma

        self._extractor = create_sift(self.get_config())

    @property
    def extractor(self):
        return self._extractor

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'n_features': self.n_features,
            'n_octave_layers': self.n_octave_layers,
            'contrast_threshold': self.contrast_threshold,
            'edge_threshold': self.edge_threshold,
            'sigma': self.sigma
        }
