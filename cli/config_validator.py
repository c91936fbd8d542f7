#!/usr/bin/env python3
"""
Configuration Validator

設定ファイルの妥当性を検証するユーティリティ
"""

import sys
import argparse
from pathlib import Path
from typing import List

# Add the package to path if running as script
sys.path.insert(0, str(Path(__file__).parent.parent))

from feature_tracking.config import load_config, TrackingConfig
from feature_tracking.feature_detector import get_available_detectors
from feature_tracking.descriptor_extractor import get_available_descriptors
from feature_tracking.feature_matcher import get_available_matchers, get_available_selectors
from feature_tracking.pipeline import check_combination
from feature_tracking.utils import normalize_type_name


class ConfigValidator:
    """設定ファイルの検証クラス"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate(self, config: TrackingConfig) -> bool:
        """
        設定の総合的な検証

        Args:
            config: 検証する設定

        Returns:
            bool: 検証結果（True = 正常）
        """
        self.errors.clear()
        self.warnings.clear()

        self._validate_types(config)
        self._validate_frame_config(config)
        self._validate_detector_config(config)
        self._validate_descriptor_config(config)
        self._validate_shared_config(config)
        self._validate_matcher_config(config)
        self._validate_paths(config)

        return len(self.errors) == 0

    def _check_type(self, name: str, available: list, kind: str) -> bool:
        """アルゴリズム名の確認"""
        if normalize_type_name(name) not in available:
            self.errors.append(f"Unknown {kind} type: '{name}'. Available: {available}")
            return False
        return True

    def _validate_types(self, config: TrackingConfig):
        """アルゴリズムの種類と組み合わせの検証"""
        detector_ok = self._check_type(config.detector_type, get_available_detectors(), 'detector')
        descriptor_ok = self._check_type(config.descriptor_type, get_available_descriptors(), 'descriptor')
        self._check_type(config.matcher_type, get_available_matchers(), 'matcher')
        self._check_type(config.selector_type, get_available_selectors(), 'selector')

        if config.descriptor_category is not None:
            self._check_type(config.descriptor_category, ['binary', 'hog'], 'descriptor category')

        if detector_ok and descriptor_ok:
            try:
                check_combination(config.detector_type, config.descriptor_type)
            except ValueError as e:
                self.errors.append(str(e))

        if (normalize_type_name(config.descriptor_type) == 'sift'
                and normalize_type_name(config.descriptor_category or 'hog') == 'binary'):
            self.errors.append("SIFT descriptors are not binary; use descriptor_category 'hog'")

    def _validate_frame_config(self, config: TrackingConfig):
        """フレーム処理設定の検証"""
        if config.buffer_size < 1:
            self.errors.append("buffer_size must be at least 1")
        elif config.buffer_size == 1:
            self.warnings.append("buffer_size 1 keeps no previous frame, so nothing will be matched")

        if config.max_keypoints is not None and config.max_keypoints <= 0:
            self.errors.append("max_keypoints must be positive")

        if config.focus_region is not None:
            if (not isinstance(config.focus_region, (list, tuple))
                    or len(config.focus_region) != 4):
                self.errors.append(
                    "focus_region must be a list of 4 values [x, y, width, height]"
                )
            elif any(v < 0 for v in config.focus_region):
                self.errors.append("focus_region values must be non-negative")

    def _validate_detector_config(self, config: TrackingConfig):
        """検出器固有設定の検証"""
        detector = normalize_type_name(config.detector_type)

        if detector == 'shitomasi':
            if config.shitomasi.block_size <= 0:
                self.errors.append("Shi-Tomasi block_size must be positive")
            if not 0 <= config.shitomasi.max_overlap < 1:
                self.errors.append("Shi-Tomasi max_overlap must be in [0, 1)")
            if not 0 < config.shitomasi.quality_level < 1:
                self.errors.append("Shi-Tomasi quality_level must be between 0 and 1")
        elif detector == 'harris':
            harris = config.harris
            if harris.block_size <= 0:
                self.errors.append("Harris block_size must be positive")
            if harris.aperture_size % 2 == 0 or not 1 <= harris.aperture_size <= 31:
                self.errors.append("Harris aperture_size must be odd and in [1, 31]")
            if not 0 <= harris.min_response < 255:
                self.errors.append("Harris min_response must be in [0, 255)")
            if not harris.apply_nms:
                self.warnings.append("Harris NMS is disabled; expect clusters of adjacent corners")
        elif detector == 'fast':
            if not 0 < config.fast.threshold < 256:
                self.errors.append("FAST threshold must be in (0, 256)")

    def _validate_descriptor_config(self, config: TrackingConfig):
        """記述子固有設定の検証"""
        descriptor = normalize_type_name(config.descriptor_type)

        if descriptor == 'brief':
            valid_sizes = [16, 32, 64]
            if config.brief.descriptor_size not in valid_sizes:
                self.errors.append(f"BRIEF descriptor_size must be one of {valid_sizes}")
        elif descriptor == 'freak':
            if config.freak.pattern_scale <= 0:
                self.errors.append("FREAK pattern_scale must be positive")
            if config.freak.n_octaves <= 0:
                self.errors.append("FREAK n_octaves must be positive")

    def _validate_shared_config(self, config: TrackingConfig):
        """検出器と記述子で共用する設定 (ORB, SIFT) の検証"""
        used = {normalize_type_name(config.detector_type),
                normalize_type_name(config.descriptor_type)}

        if 'orb' in used:
            orb = config.orb
            if orb.n_features <= 0:
                self.errors.append("ORB n_features must be positive")
            if orb.scale_factor <= 1.0:
                self.errors.append("ORB scale_factor must be greater than 1.0")
            if orb.n_levels <= 0:
                self.errors.append("ORB n_levels must be positive")
            if orb.wta_k not in [2, 3, 4]:
                self.errors.append("ORB wta_k must be 2, 3, or 4")
            if orb.patch_size <= 0:
                self.errors.append("ORB patch_size must be positive")

        if 'sift' in used:
            sift = config.sift
            if sift.n_features < 0:
                self.errors.append("SIFT n_features must be non-negative")
            if sift.n_octave_layers <= 0:
                self.errors.append("SIFT n_octave_layers must be positive")
            if not 0 < sift.contrast_threshold < 1:
                self.errors.append("SIFT contrast_threshold must be between 0 and 1")
            if sift.sigma <= 0:
                self.errors.append("SIFT sigma must be positive")

    def _validate_matcher_config(self, config: TrackingConfig):
        """マッチャー設定の検証"""
        matcher = config.matcher
        selector = normalize_type_name(config.selector_type)

        if not 0 < matcher.ratio_threshold <= 1:
            self.errors.append("matcher ratio_threshold must be in (0, 1]")
        if matcher.k < 2:
            self.errors.append("matcher k must be at least 2")
        if matcher.cross_check and selector == 'knn':
            self.errors.append("matcher cross_check cannot be combined with the knn selector")
        if matcher.flann_algorithm not in ['kdtree', 'lsh']:
            self.errors.append("matcher flann_algorithm must be 'kdtree' or 'lsh'")
        elif (normalize_type_name(config.matcher_type) == 'flann'
              and matcher.flann_algorithm == 'lsh'
              and normalize_type_name(config.descriptor_type) == 'sift'):
            self.errors.append("FLANN lsh index requires binary descriptors")

    def _validate_paths(self, config: TrackingConfig):
        """パスの検証"""
        input_path = Path(config.input_dir)
        if not input_path.exists():
            self.errors.append(f"Input directory not found: {input_path}")
        elif not input_path.is_dir():
            self.errors.append(f"Input path is not a directory: {input_path}")

        if not config.file_patterns:
            self.errors.append("file_patterns must be specified and non-empty")
        elif not isinstance(config.file_patterns, list):
            self.errors.append("file_patterns must be a list")

    def get_report(self) -> str:
        """検証レポートを取得"""
        report = []

        if self.errors:
            report.append("ERRORS:")
            for error in self.errors:
                report.append(f"  - {error}")

        if self.warnings:
            report.append("WARNINGS:")
            for warning in self.warnings:
                report.append(f"  - {warning}")

        if not self.errors and not self.warnings:
            report.append("Configuration is valid!")

        return "\n".join(report)


def main(argv=None):
    """メイン関数"""
    parser = argparse.ArgumentParser(
        description='Validate feature tracker configuration files'
    )

    parser.add_argument('config', type=str,
                        help='Path to YAML configuration file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')
    parser.add_argument('--warnings-as-errors', action='store_true',
                        help='Treat warnings as errors')

    args = parser.parse_args(argv)

    try:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Configuration file not found: {config_path}", file=sys.stderr)
            return 1

        print(f"Validating configuration: {config_path}")
        config = load_config(config_path)

        validator = ConfigValidator(verbose=args.verbose)
        is_valid = validator.validate(config)

        print(validator.get_report())

        if not is_valid:
            return 1
        elif args.warnings_as_errors and validator.warnings:
            print("\nTreating warnings as errors due to --warnings-as-errors flag")
            return 1
        else:
            return 0

    except Exception as e:
        print(f"Error validating configuration: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
