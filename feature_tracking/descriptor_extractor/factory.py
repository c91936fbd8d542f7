from typing import Dict, Any, Type, Optional
from dataclasses import asdict
import warnings

from .base import BaseDescriptorExtractor
from .traditional import (
    BRISKDescriptor,
    BRIEFDescriptor,
    ORBDescriptor,
    FREAKDescriptor,
    AKAZEDescriptor,
    SIFTDescriptor
)
from ..config import BRISKConfig, BRIEFConfig, ORBConfig, FREAKConfig, AKAZEConfig, SIFTConfig
from ..utils import normalize_type_name, resolve_type_name


class DescriptorFactory:
    """記述子抽出器を生成するファクトリクラス"""

    _descriptors: Dict[str, Type[BaseDescriptorExtractor]] = {
        'brisk': BRISKDescriptor,
        'brief': BRIEFDescriptor,
        'orb': ORBDescriptor,
        'freak': FREAKDescriptor,
        'akaze': AKAZEDescriptor,
        'sift': SIFTDescriptor,
    }

    _default_configs: Dict[str, Dict[str, Any]] = {
        'brisk': asdict(BRISKConfig()),
        'brief': asdict(BRIEFConfig()),
        'orb': asdict(ORBConfig()),
        'freak': asdict(FREAKConfig()),
        'akaze': asdict(AKAZEConfig()),
        'sift': asdict(SIFTConfig()),
    }

    @classmethod
    def create(cls,
               descriptor_type: str,
               config: Optional[Dict[str, Any]] = None,
               **kwargs) -> BaseDescriptorExtractor:
        """
        指定された型の記述子抽出器を生成

        Args:
            descriptor_type: 記述子の種類 ('brisk', 'brief', 'orb', 'freak', 'akaze', 'sift')
            config: 設定辞書 (省略可能)
            **kwargs: 個別の設定パラメータ

        Returns:
            BaseDescriptorExtractor: 生成された記述子抽出器

        Raises:
            ValueError: 未知の記述子タイプが指定された場合
            ImportError: opencv-contrib-python がインストールされていない場合
            RuntimeError: 記述子抽出器の生成に失敗した場合
        """
        key = resolve_type_name(descriptor_type, cls._descriptors.keys(), 'descriptor')

        merged_config = cls._default_configs.get(key, {}).copy()
        if config:
            merged_config.update(config)
        merged_config.update(kwargs)

        descriptor_class = cls._descriptors[key]

        try:
            return descriptor_class(**merged_config)
        except (ValueError, TypeError, ImportError):
            raise
        except Exception as e:
            raise RuntimeError(f"Failed to create {key} descriptor: {e}") from e

    @classmethod
    def get_available_descriptors(cls) -> list:
        """利用可能な記述子名のリストを取得"""
        return list(cls._descriptors.keys())

    @classmethod
    def get_default_config(cls, descriptor_type: str) -> Dict[str, Any]:
        """指定された記述子のデフォルト設定を取得"""
        key = resolve_type_name(descriptor_type, cls._descriptors.keys(), 'descriptor')
        return cls._default_configs.get(key, {}).copy()

    @classmethod
    def get_descriptor_category(cls, descriptor_type: str) -> str:
        """
        記述子の種類 ('binary' または 'hog') を取得

        マッチングの距離尺度 (Hamming / L2) の選択に使う。
        """
        key = resolve_type_name(descriptor_type, cls._descriptors.keys(), 'descriptor')
        return cls._descriptors[key].descriptor_category

    @classmethod
    def register_descriptor(cls,
                            name: str,
                            descriptor_class: Type[BaseDescriptorExtractor],
                            default_config: Optional[Dict[str, Any]] = None):
        """
        新しい記述子抽出器を登録

        Args:
            name: 記述子の名前
            descriptor_class: 記述子抽出器のクラス
            default_config: デフォルト設定 (省略可能)
        """
        if not (isinstance(descriptor_class, type)
                and issubclass(descriptor_class, BaseDescriptorExtractor)):
            raise TypeError("descriptor_class must be a subclass of BaseDescriptorExtractor")

        key = normalize_type_name(name)
        if key in cls._descriptors:
            warnings.warn(f"Overriding existing descriptor: {key}")

        cls._descriptors[key] = descriptor_class
        if default_config:
            cls._default_configs[key] = default_config

    @classmethod
    def unregister_descriptor(cls, name: str):
        """記述子抽出器の登録を解除"""
        key = normalize_type_name(name)
        cls._descriptors.pop(key, None)
        cls._default_configs.pop(key, None)

    @classmethod
    def is_available(cls, descriptor_type: str) -> bool:
        """指定された記述子抽出器が利用可能かどうかを確認"""
        try:
            cls.create(descriptor_type)
            return True
        except (ValueError, TypeError, ImportError, RuntimeError):
            return False
