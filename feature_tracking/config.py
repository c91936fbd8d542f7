import yaml
from typing import Dict, Any, Optional, Union
from pathlib import Path
from dataclasses import dataclass, asdict, fields, field

from .utils import normalize_type_name


@dataclass
class ShiTomasiConfig:
    """Shi-Tomasi検出器の設定"""
    block_size: int = 4
    max_overlap: float = 0.0
    quality_level: float = 0.01
    k: float = 0.04


@dataclass
class HarrisConfig:
    """Harris検出器の設定"""
    block_size: int = 4
    aperture_size: int = 3
    min_response: float = 100
    k: float = 0.04
    apply_nms: bool = True


@dataclass
class FASTConfig:
    """FAST検出器の設定"""
    threshold: int = 30
    nonmax_suppression: bool = True


@dataclass
class BRISKConfig:
    """BRISK検出器・記述子の設定"""
    threshold: int = 30
    octaves: int = 3
    pattern_scale: float = 1.0


@dataclass
class ORBConfig:
    """ORB検出器・記述子の設定"""
    n_features: int = 500
    scale_factor: float = 1.2
    n_levels: int = 8
    edge_threshold: int = 31
    first_level: int = 0
    wta_k: int = 2
    patch_size: int = 31
    fast_threshold: int = 20


@dataclass
class AKAZEConfig:
    """AKAZE検出器・記述子の設定"""
    threshold: float = 0.001
    n_octaves: int = 4
    n_octave_layers: int = 4


@dataclass
class SIFTConfig:
    """SIFT検出器・記述子の設定"""
    n_features: int = 0
    n_octave_layers: int = 3
    contrast_threshold: float = 0.04
    edge_threshold: float = 10
    sigma: float = 1.6


@dataclass
class BRIEFConfig:
    """BRIEF記述子の設定"""
    descriptor_size: int = 32
    use_orientation: bool = False


@dataclass
class FREAKConfig:
    """FREAK記述子の設定"""
    orientation_normalized: bool = True
    scale_normalized: bool = True
    pattern_scale: float = 22.0
    n_octaves: int = 4


@dataclass
class MatcherConfig:
    """マッチャーの設定"""
    cross_check: bool = False
    k: int = 2
    ratio_threshold: float = 0.8
    flann_algorithm: str = 'kdtree'
    flann_trees: int = 4
    flann_checks: int = 32


# アルゴリズム名 (正規化済み) -> 設定セクション
DETECTOR_SECTIONS = {
    'shitomasi': 'shitomasi',
    'harris': 'harris',
    'fast': 'fast',
    'brisk': 'brisk',
    'orb': 'orb',
    'akaze': 'akaze',
    'sift': 'sift',
}

DESCRIPTOR_SECTIONS = {
    'brisk': 'brisk',
    'brief': 'brief',
    'orb': 'orb',
    'freak': 'freak',
    'akaze': 'akaze',
    'sift': 'sift',
}

SECTION_CLASSES = {
    'shitomasi': ShiTomasiConfig,
    'harris': HarrisConfig,
    'fast': FASTConfig,
    'brisk': BRISKConfig,
    'orb': ORBConfig,
    'akaze': AKAZEConfig,
    'sift': SIFTConfig,
    'brief': BRIEFConfig,
    'freak': FREAKConfig,
    'matcher': MatcherConfig,
}


@dataclass
class TrackingConfig:
    """特徴点追跡の全体設定"""
    # アルゴリズムの選択
    detector_type: str = "shitomasi"
    descriptor_type: str = "brisk"
    matcher_type: str = "bf"
    selector_type: str = "nn"
    descriptor_category: Optional[str] = None

    # フレーム処理の設定
    buffer_size: int = 2
    max_keypoints: Optional[int] = None
    focus_region: Optional[list] = None

    # 入力設定
    input_dir: str = "images/"
    file_patterns: list = None

    # アルゴリズムごとの設定（使わなくても全て含める）
    shitomasi: ShiTomasiConfig = field(default_factory=ShiTomasiConfig)
    harris: HarrisConfig = field(default_factory=HarrisConfig)
    fast: FASTConfig = field(default_factory=FASTConfig)
    brisk: BRISKConfig = field(default_factory=BRISKConfig)
    orb: ORBConfig = field(default_factory=ORBConfig)
    akaze: AKAZEConfig = field(default_factory=AKAZEConfig)
    sift: SIFTConfig = field(default_factory=SIFTConfig)
    brief: BRIEFConfig = field(default_factory=BRIEFConfig)
    freak: FREAKConfig = field(default_factory=FREAKConfig)
    matcher: MatcherConfig = field(default_factory=MatcherConfig)

    def __post_init__(self):
        """初期化後の処理"""
        if self.file_patterns is None:
            self.file_patterns = ["*.png", "*.jpg", "*.jpeg", "*.bmp", "*.tiff"]


# セクション以外のトップレベルのキー
_TOP_LEVEL_KEYS = [f.name for f in fields(TrackingConfig) if f.name not in SECTION_CLASSES]


def _build_section(name: str, values: Optional[Dict[str, Any]]):
    """セクションの辞書から設定データクラスを生成"""
    section_class = SECTION_CLASSES[name]
    if values is None:
        return section_class()
    if not isinstance(values, dict):
        raise ValueError(f"Section '{name}' must be a mapping, got {type(values).__name__}")

    known = {f.name for f in fields(section_class)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown keys in section '{name}': {sorted(unknown)}. "
                         f"Available keys: {sorted(known)}")
    return section_class(**values)


class ConfigManager:
    """設定管理クラス"""

    def __init__(self, config: Optional[TrackingConfig] = None):
        self.config = config if config is not None else TrackingConfig()

    def load_from_dict(self, config_dict: Dict[str, Any]):
        """
        辞書から設定を読み込み

        Args:
            config_dict: 設定辞書

        Raises:
            ValueError: 未知のキーが含まれる場合
        """
        config_dict = dict(config_dict or {})

        unknown = set(config_dict) - set(_TOP_LEVEL_KEYS) - set(SECTION_CLASSES)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        defaults = TrackingConfig()
        for key in _TOP_LEVEL_KEYS:
            setattr(self.config, key, config_dict.get(key, getattr(defaults, key)))

        # file_patterns が null の場合はデフォルトに戻す
        if self.config.file_patterns is None:
            self.config.file_patterns = defaults.file_patterns

        for name in SECTION_CLASSES:
            setattr(self.config, name, _build_section(name, config_dict.get(name)))

    def load_from_yaml(self, yaml_path: Union[str, Path]):
        """
        YAMLファイルから設定を読み込み

        Args:
            yaml_path: YAMLファイルのパス
        """
        yaml_path = Path(yaml_path)

        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path, 'r', encoding='utf-8') as f:
            config_dict = yaml.safe_load(f)

        if config_dict is not None and not isinstance(config_dict, dict):
            raise ValueError(f"Config file must contain a mapping: {yaml_path}")

        self.load_from_dict(config_dict)

    def save_to_yaml(self, yaml_path: Union[str, Path]):
        """
        YAMLファイルに設定を保存

        Args:
            yaml_path: YAMLファイルのパス
        """
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False,
                           allow_unicode=True, sort_keys=False)

    def get_detector_config(self, detector_type: Optional[str] = None) -> Dict[str, Any]:
        """
        指定された検出器の設定を取得

        Args:
            detector_type: 検出器の種類（省略時は現在の設定を使用）

        Returns:
            Dict[str, Any]: 検出器の設定
        """
        if detector_type is None:
            detector_type = self.config.detector_type

        key = normalize_type_name(detector_type)
        if key not in DETECTOR_SECTIONS:
            raise ValueError(f"Unknown detector type: {detector_type}")
        return asdict(getattr(self.config, DETECTOR_SECTIONS[key]))

    def get_descriptor_config(self, descriptor_type: Optional[str] = None) -> Dict[str, Any]:
        """
        指定された記述子の設定を取得

        Args:
            descriptor_type: 記述子の種類（省略時は現在の設定を使用）

        Returns:
            Dict[str, Any]: 記述子の設定
        """
        if descriptor_type is None:
            descriptor_type = self.config.descriptor_type

        key = normalize_type_name(descriptor_type)
        if key not in DESCRIPTOR_SECTIONS:
            raise ValueError(f"Unknown descriptor type: {descriptor_type}")
        return asdict(getattr(self.config, DESCRIPTOR_SECTIONS[key]))

    def get_matcher_config(self) -> Dict[str, Any]:
        """マッチャーの設定を取得"""
        return asdict(self.config.matcher)

    def update_section(self, section: str, **kwargs):
        """
        指定されたセクションの設定を更新

        Args:
            section: セクション名 (アルゴリズム名または 'matcher')
            **kwargs: 更新する設定

        Raises:
            ValueError: 未知のセクションまたはキーが指定された場合
        """
        name = normalize_type_name(section)
        if name not in SECTION_CLASSES:
            raise ValueError(f"Unknown config section: {section}")

        target = getattr(self.config, name)
        for key, value in kwargs.items():
            if not hasattr(target, key):
                raise ValueError(f"Unknown key '{key}' in section '{name}'")
            setattr(target, key, value)

    def to_dict(self) -> Dict[str, Any]:
        """
        設定を辞書として取得

        Returns:
            Dict[str, Any]: 設定辞書
        """
        return asdict(self.config)

    def __str__(self) -> str:
        """文字列表現"""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False,
                              allow_unicode=True, sort_keys=False)


def create_default_config() -> TrackingConfig:
    """デフォルト設定を作成"""
    return TrackingConfig()


def load_config(config_path: Union[str, Path]) -> TrackingConfig:
    """
    設定ファイルを読み込み

    Args:
        config_path: 設定ファイルのパス

    Returns:
        TrackingConfig: 設定
    """
    config_path = Path(config_path)
    manager = ConfigManager()

    if config_path.suffix.lower() in ['.yaml', '.yml']:
        manager.load_from_yaml(config_path)
    else:
        raise ValueError(f"Unsupported config file format: {config_path.suffix}. Only YAML files are supported.")

    return manager.config
