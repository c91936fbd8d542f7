from typing import Dict, Any, Type, Optional
from dataclasses import asdict
import warnings

from .base import BaseDetector
from .traditional import (
    ShiTomasiDetector,
    HarrisDetector,
    FASTDetector,
    BRISKDetector,
    ORBDetector,
    AKAZEDetector,
    SIFTDetector
)
from ..config import (
    ShiTomasiConfig,
    HarrisConfig,
    FASTConfig,
    BRISKConfig,
    ORBConfig,
    AKAZEConfig,
    SIFTConfig
)
from ..utils import normalize_type_name, resolve_type_name


class DetectorFactory:
    """特徴点検出器を生成するファクトリクラス"""

    # 利用可能な検出器の登録
    _detectors: Dict[str, Type[BaseDetector]] = {
        'shitomasi': ShiTomasiDetector,
        'harris': HarrisDetector,
        'fast': FASTDetector,
        'brisk': BRISKDetector,
        'orb': ORBDetector,
        'akaze': AKAZEDetector,
        'sift': SIFTDetector,
    }

    # 各検出器のデフォルト設定
    _default_configs: Dict[str, Dict[str, Any]] = {
        'shitomasi': asdict(ShiTomasiConfig()),
        'harris': asdict(HarrisConfig()),
        'fast': asdict(FASTConfig()),
        'brisk': asdict(BRISKConfig()),
        'orb': asdict(ORBConfig()),
        'akaze': asdict(AKAZEConfig()),
        'sift': asdict(SIFTConfig()),
    }

    @classmethod
    def create(cls,
               detector_type: str,
               config: Optional[Dict[str, Any]] = None,
               **kwargs) -> BaseDetector:
        """
        指定された型の特徴点検出器を生成

        Args:
            detector_type: 検出器の種類 ('shitomasi', 'harris', 'fast', ...)
            config: 設定辞書 (省略可能)
            **kwargs: 個別の設定パラメータ

        Returns:
            BaseDetector: 生成された検出器

        Raises:
            ValueError: 未知の検出器タイプが指定された場合
            ImportError: OpenCV に検出器が含まれていない場合
            RuntimeError: 検出器の生成に失敗した場合
        """
        key = resolve_type_name(detector_type, cls._detectors.keys(), 'detector')

        # 設定をマージ (優先順位: kwargs > config > default)
        merged_config = cls._default_configs.get(key, {}).copy()
        if config:
            merged_config.update(config)
        merged_config.update(kwargs)

        detector_class = cls._detectors[key]

        try:
            return detector_class(**merged_config)
        except (ValueError, TypeError, ImportError):
            raise
        except Exception as e:
            raise RuntimeError(f"Failed to create {key} detector: {e}") from e

    @classmethod
    def get_available_detectors(cls) -> list:
        """利用可能な検出器名のリストを取得"""
        return list(cls._detectors.keys())

    @classmethod
    def get_default_config(cls, detector_type: str) -> Dict[str, Any]:
        """
        指定された検出器のデフォルト設定を取得

        Raises:
            ValueError: 未知の検出器タイプが指定された場合
        """
        key = resolve_type_name(detector_type, cls._detectors.keys(), 'detector')
        return cls._default_configs.get(key, {}).copy()

    @classmethod
    def register_detector(cls,
                          name: str,
                          detector_class: Type[BaseDetector],
                          default_config: Optional[Dict[str, Any]] = None):
        """
        新しい検出器を登録

        Args:
            name: 検出器の名前
            detector_class: 検出器のクラス
            default_config: デフォルト設定 (省略可能)
        """
        if not (isinstance(detector_class, type) and issubclass(detector_class, BaseDetector)):
            raise TypeError("detector_class must be a subclass of BaseDetector")

        key = normalize_type_name(name)
        if key in cls._detectors:
            warnings.warn(f"Overriding existing detector: {key}")

        cls._detectors[key] = detector_class
        if default_config:
            cls._default_configs[key] = default_config

    @classmethod
    def unregister_detector(cls, name: str):
        """検出器の登録を解除"""
        key = normalize_type_name(name)
        cls._detectors.pop(key, None)
        cls._default_configs.pop(key, None)

    @classmethod
    def is_available(cls, detector_type: str) -> bool:
        """
        指定された検出器が利用可能かどうかを確認

        Returns:
            bool: 生成できる場合 True
        """
        try:
            cls.create(detector_type)
            return True
        except (ValueError, TypeError, ImportError, RuntimeError):
            return False
