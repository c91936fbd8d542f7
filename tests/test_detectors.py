from types import SimpleNamespace

import numpy as np
import pytest

from feature_tracking.feature_detector import (
    BaseDetector,
    DetectorFactory,
    KeyPoint,
    ShiTomasiDetector,
    HarrisDetector,
    FASTDetector,
    create_detector,
    get_available_detectors,
    to_grayscale,
    filter_keypoints_by_region,
    limit_keypoints,
    compute_keypoint_statistics
)
from feature_tracking.feature_detector import traditional
from feature_tracking.feature_detector.traditional import opencv_factory


class TestToGrayscale:

    def test_gray_image_is_unchanged(self, textured_image):
        assert to_grayscale(textured_image) is textured_image

    def test_bgr_and_bgra(self, textured_image):
        bgr = np.dstack([textured_image] * 3)
        bgra = np.dstack([textured_image] * 4)
        assert to_grayscale(bgr).shape == textured_image.shape
        assert to_grayscale(bgra).shape == textured_image.shape

    def test_single_channel_3d(self, textured_image):
        assert to_grayscale(textured_image[:, :, np.newaxis]).shape == textured_image.shape

    def test_invalid_images(self):
        with pytest.raises(ValueError):
            to_grayscale(np.array([], dtype=np.uint8))
        with pytest.raises(ValueError):
            to_grayscale(np.zeros((2, 2, 2, 2), dtype=np.uint8))


class TestShiTomasi:

    def test_detects_corners_with_block_size(self, textured_image):
        keypoints = ShiTomasiDetector().detect(textured_image)
        assert len(keypoints) > 0
        assert all(isinstance(kp, KeyPoint) for kp in keypoints)
        assert all(kp.size == 4.0 for kp in keypoints)

    def test_max_corners_from_image_size(self):
        detector = ShiTomasiDetector(block_size=4, max_overlap=0.0)
        assert detector.min_distance == pytest.approx(4.0)
        assert detector.max_corners((100, 200)) == 5000

    def test_blank_image_has_no_corners(self, blank_image):
        assert ShiTomasiDetector().detect(blank_image) == []

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            ShiTomasiDetector(block_size=0)
        with pytest.raises(ValueError):
            ShiTomasiDetector(max_overlap=1.0)


class TestHarris:

    def test_candidates_are_row_major_above_threshold(self):
        response = np.zeros((5, 6), dtype=np.float32)
        response[1, 4] = 150
        response[3, 2] = 200
        response[0, 0] = 100  # 閾値と等しい画素は候補にならない

        candidates = HarrisDetector(min_response=100).find_candidates(response)

        assert [(kp.x, kp.y) for kp in candidates] == [(4.0, 1.0), (2.0, 3.0)]
        assert [kp.response for kp in candidates] == [150.0, 200.0]
        assert all(kp.size == 6.0 for kp in candidates)

    def test_response_is_normalized(self, squares_image):
        response = HarrisDetector().compute_response(squares_image)
        assert response.dtype == np.float32
        assert response.min() == pytest.approx(0.0, abs=1e-3)
        assert response.max() == pytest.approx(255.0, abs=1e-3)

    def test_detect_with_and_without_nms(self, squares_image):
        with_nms = HarrisDetector(apply_nms=True).detect(squares_image)
        without_nms = HarrisDetector(apply_nms=False).detect(squares_image)

        assert 0 < len(with_nms) <= len(without_nms)
        assert all(kp.response > 100 for kp in with_nms)
        assert all(kp.size == 6.0 for kp in with_nms)

    def test_blank_image_has_no_corners(self, blank_image):
        assert HarrisDetector().detect(blank_image) == []

    def test_invalid_aperture(self):
        with pytest.raises(ValueError):
            HarrisDetector(aperture_size=4)


class TestKeypointDetectors:

    def test_fast_finds_square_corners(self, squares_image):
        # 二値画像の角は隣接画素とスコアが同値になるので抑制なしで確認する
        keypoints = FASTDetector(nonmax_suppression=False).detect(squares_image)
        assert len(keypoints) > 0

    def test_fast_nonmax_suppression_reduces_corners(self, textured_image):
        suppressed = FASTDetector().detect(textured_image)
        raw = FASTDetector(nonmax_suppression=False).detect(textured_image)
        assert 0 < len(suppressed) <= len(raw)

    @pytest.mark.parametrize('detector_type', ['shitomasi', 'fast', 'brisk', 'orb', 'akaze', 'sift'])
    def test_every_detector_finds_keypoints(self, detector_type, textured_image):
        detector = create_detector(detector_type)
        keypoints = detector.detect(textured_image)

        assert len(keypoints) > 0
        height, width = textured_image.shape
        for kp in keypoints:
            assert 0 <= kp.x < width and 0 <= kp.y < height

    def test_color_input(self, textured_image):
        bgr = np.dstack([textured_image] * 3)
        assert len(create_detector('fast').detect(bgr)) == len(create_detector('fast').detect(textured_image))


class TestDetectorFactory:

    @pytest.mark.parametrize('detector_type', get_available_detectors())
    def test_every_registered_detector_can_be_built(self, detector_type):
        assert isinstance(DetectorFactory.create(detector_type), BaseDetector)
        assert DetectorFactory.is_available(detector_type)

    def test_available_detectors(self):
        assert get_available_detectors() == ['shitomasi', 'harris', 'fast', 'brisk', 'orb', 'akaze', 'sift']

    @pytest.mark.parametrize('name', ['Shi-Tomasi', 'SHITOMASI', 'shi_tomasi'])
    def test_name_variants(self, name):
        assert isinstance(DetectorFactory.create(name), ShiTomasiDetector)

    def test_unknown_detector(self):
        with pytest.raises(ValueError, match="Unknown detector type"):
            DetectorFactory.create('surf')

    def test_config_priority(self):
        detector = DetectorFactory.create('harris', {'min_response': 50, 'k': 0.05}, min_response=80)
        assert detector.min_response == 80
        assert detector.k == 0.05
        assert detector.block_size == 4

    def test_default_config_is_a_copy(self):
        config = DetectorFactory.get_default_config('fast')
        config['threshold'] = 99
        assert DetectorFactory.get_default_config('fast')['threshold'] == 30

    def test_register_and_unregister(self):
        class CenterDetector(BaseDetector):
            def detect(self, image):
                height, width = image.shape[:2]
                return [KeyPoint(x=width / 2, y=height / 2, size=1.0)]

            def get_config(self):
                return {}

        DetectorFactory.register_detector('center', CenterDetector)
        try:
            assert DetectorFactory.is_available('center')
            with pytest.warns(UserWarning, match="Overriding"):
                DetectorFactory.register_detector('center', CenterDetector)
        finally:
            DetectorFactory.unregister_detector('center')

        assert 'center' not in get_available_detectors()

    def test_register_requires_detector_class(self):
        with pytest.raises(TypeError):
            DetectorFactory.register_detector('bad', object)


class TestKeypointUtils:

    def test_filter_by_region(self):
        keypoints = [KeyPoint(x=5, y=5, size=1), KeyPoint(x=15, y=5, size=1), KeyPoint(x=10, y=10, size=1)]
        kept = filter_keypoints_by_region(keypoints, (0, 0, 10, 10))
        assert kept == [keypoints[0]]

    def test_filter_rejects_negative_size(self):
        with pytest.raises(ValueError):
            filter_keypoints_by_region([], (0, 0, -1, 10))

    def test_limit_keeps_strongest_in_stable_order(self):
        keypoints = [KeyPoint(x=i, y=0, size=1, response=r) for i, r in enumerate([1, 3, 2, 3])]
        limited = limit_keypoints(keypoints, 3)
        assert [kp.x for kp in limited] == [1, 3, 2]

    def test_limit_returns_all_when_under_limit(self):
        keypoints = [KeyPoint(x=0, y=0, size=1)]
        assert limit_keypoints(keypoints, 10) == keypoints

    def test_statistics(self):
        keypoints = [KeyPoint(x=0, y=0, size=2, response=1), KeyPoint(x=0, y=0, size=4, response=3)]
        stats = compute_keypoint_statistics(keypoints)
        assert stats['num_keypoints'] == 2
        assert stats['mean_size'] == pytest.approx(3.0)
        assert stats['max_response'] == pytest.approx(3.0)
        assert compute_keypoint_statistics([])['num_keypoints'] == 0

    def test_statistics_keys_do_not_depend_on_input(self):
        keypoints = [KeyPoint(x=0, y=0, size=2, response=1)]
        empty = compute_keypoint_statistics([])
        assert set(empty) == set(compute_keypoint_statistics(keypoints))
        assert empty['min_size'] == 0.0 and empty['max_response'] == 0.0


class TestOpenCVFactory:

    @pytest.mark.parametrize('name', ['BRISK_create', 'AKAZE_create', 'ORB_create', 'SIFT_create'])
    def test_factories_are_found(self, name):
        assert callable(opencv_factory(name))

    def test_falls_back_to_xfeatures2d(self, monkeypatch):
        def brisk_create(*args):
            return ('xfeatures2d', args)

        fake_cv2 = SimpleNamespace(__version__='5.0.0',
                                   xfeatures2d=SimpleNamespace(BRISK_create=brisk_create))
        monkeypatch.setattr(traditional, 'cv2', fake_cv2)

        assert opencv_factory('BRISK_create') is brisk_create
        assert traditional.create_brisk({'threshold': 30, 'octaves': 3, 'pattern_scale': 1.0}) == \
            ('xfeatures2d', (30, 3, 1.0))

    def test_missing_factory(self, monkeypatch):
        monkeypatch.setattr(traditional, 'cv2', SimpleNamespace(__version__='5.0.0'))
        with pytest.raises(ImportError, match="AKAZE_create"):
            opencv_factory('AKAZE_create')
        with pytest.raises(ImportError):
            DetectorFactory.create('akaze')
