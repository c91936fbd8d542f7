from pathlib import Path

import pytest
import yaml

from feature_tracking.config import (
    ConfigManager,
    HarrisConfig,
    TrackingConfig,
    create_default_config,
    load_config
)
from feature_tracking.utils import normalize_type_name, resolve_type_name


DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / 'configs' / 'default.yaml'


class TestNaming:

    @pytest.mark.parametrize('name, expected', [
        ('Shi-Tomasi', 'shitomasi'),
        ('MAT_FLANN', 'flann'),
        ('SEL_KNN', 'knn'),
        ('SEL_NN', 'nn'),
        ('DES_BINARY', 'binary'),
        (' AKAZE ', 'akaze'),
    ])
    def test_normalize(self, name, expected):
        assert normalize_type_name(name) == expected

    def test_normalize_rejects_non_strings(self):
        with pytest.raises(TypeError):
            normalize_type_name(5)

    def test_resolve(self):
        assert resolve_type_name('FAST', ['fast'], 'detector') == 'fast'
        with pytest.raises(ValueError, match="Unknown detector type: SURF"):
            resolve_type_name('SURF', ['fast'], 'detector')


class TestConfigManager:

    def test_defaults(self):
        config = create_default_config()
        assert config.detector_type == 'shitomasi'
        assert config.descriptor_type == 'brisk'
        assert config.matcher_type == 'bf'
        assert config.selector_type == 'nn'
        assert config.buffer_size == 2
        assert config.harris == HarrisConfig()
        assert config.matcher.ratio_threshold == 0.8

    def test_default_yaml(self):
        config = load_config(DEFAULT_CONFIG)
        assert config.harris.min_response == 100
        assert config.brisk.threshold == 30
        assert config.matcher.flann_trees == 4
        assert config.matcher.flann_checks == 32
        assert config.focus_region is None

    def test_load_from_dict(self):
        manager = ConfigManager()
        manager.load_from_dict({
            'detector_type': 'harris',
            'focus_region': [10, 20, 30, 40],
            'harris': {'min_response': 80},
        })

        assert manager.config.detector_type == 'harris'
        assert manager.config.focus_region == [10, 20, 30, 40]
        assert manager.config.harris.min_response == 80
        assert manager.config.harris.aperture_size == 3
        # 指定のないキーはデフォルト
        assert manager.config.descriptor_type == 'brisk'

    def test_unknown_top_level_key(self):
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            ConfigManager().load_from_dict({'extractor_type': 'sift'})

    def test_unknown_section_key(self):
        with pytest.raises(ValueError, match="Unknown keys in section 'fast'"):
            ConfigManager().load_from_dict({'fast': {'thresh': 10}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError):
            ConfigManager().load_from_dict({'orb': [1, 2]})

    def test_yaml_round_trip(self, tmp_path):
        manager = ConfigManager(TrackingConfig(detector_type='fast', focus_region=[1, 2, 3, 4],
                                               max_keypoints=50))
        manager.update_section('brisk', threshold=20)
        path = tmp_path / 'nested' / 'config.yaml'
        manager.save_to_yaml(path)

        assert load_config(path) == manager.config
        with open(path, 'r', encoding='utf-8') as f:
            assert yaml.safe_load(f)['brisk']['threshold'] == 20

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / 'empty.yml'
        path.write_text('')
        assert load_config(path) == TrackingConfig()

    def test_yaml_must_be_mapping(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text('- a\n- b\n')
        with pytest.raises(ValueError):
            load_config(path)

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ValueError, match="Unsupported config file format"):
            load_config(tmp_path / 'config.json')

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'missing.yaml')

    def test_algorithm_sections(self):
        manager = ConfigManager()
        assert manager.get_detector_config('Shi-Tomasi')['block_size'] == 4
        assert manager.get_descriptor_config('brief')['descriptor_size'] == 32
        # ORB と SIFT は検出器と記述子で同じセクションを使う
        assert manager.get_detector_config('orb') == manager.get_descriptor_config('orb')
        assert manager.get_matcher_config()['k'] == 2
        with pytest.raises(ValueError):
            manager.get_descriptor_config('harris')

    def test_update_section(self):
        manager = ConfigManager()
        manager.update_section('MATCHER', ratio_threshold=0.7)
        assert manager.config.matcher.ratio_threshold == 0.7
        with pytest.raises(ValueError):
            manager.update_section('harris', sigma=1.0)
        with pytest.raises(ValueError):
            manager.update_section('surf', threshold=1)

    def test_str_is_yaml(self):
        assert yaml.safe_load(str(ConfigManager()))['detector_type'] == 'shitomasi'
