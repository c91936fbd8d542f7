import logging
from typing import Dict, Any, List
import numpy as np
import cv2

from .base import BaseDetector, KeyPoint, from_cv_keypoints
from .nms import suppress_overlapping_keypoints


logger = logging.getLogger(__name__)


class ShiTomasiDetector(BaseDetector):
    """Shi-Tomasi コーナー検出器"""

    def __init__(self,
                 block_size: int = 4,
                 max_overlap: float = 0.0,
                 quality_level: float = 0.01,
                 k: float = 0.04,
                 **kwargs):
        """
        ShiTomasiDetectorの初期化

        Args:
            block_size: 微分共分散行列を計算する近傍ブロックのサイズ
            max_overlap: 特徴点同士の許容重なり率 (0.0 - 1.0)
            quality_level: 最良コーナーに対する最小品質の比率
            k: Harris パラメータ (Harris 判定は使わないが設定として保持)
        """
        super().__init__(**kwargs)
        if block_size <= 0:
            raise ValueError("block_size must be positive")
        if not 0.0 <= max_overlap < 1.0:
            raise ValueError("max_overlap must be in [0, 1)")

        self.block_size = block_size
        self.max_overlap = max_overlap
        self.quality_level = quality_level
        self.k = k

    @property
    def min_distance(self) -> float:
        """特徴点間の最小距離"""
        return (1.0 - self.max_overlap) * self.block_size

    def max_corners(self, image_shape) -> int:
        """画像サイズから検出する最大コーナー数を決める"""
        rows, cols = image_shape[:2]
        return int(rows * cols / max(1.0, self.min_distance))

    def detect(self, image: np.ndarray) -> List[KeyPoint]:
        """画像からShi-Tomasiコーナーを検出"""
        gray = self.preprocess_image(image)

        corners = cv2.goodFeaturesToTrack(
            gray,
            maxCorners=self.max_corners(gray.shape),
            qualityLevel=self.quality_level,
            minDistance=self.min_distance,
            mask=None,
            blockSize=self.block_size,
            useHarrisDetector=False,
            k=self.k
        )

        keypoints = []
        if corners is not None:
            for x, y in corners.reshape(-1, 2):
                keypoints.append(KeyPoint(x=float(x), y=float(y), size=float(self.block_size)))

        logger.debug(f"Shi-Tomasi detected {len(keypoints)} keypoints")
        return keypoints

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'block_size': self.block_size,
            'max_overlap': self.max_overlap,
            'quality_level': self.quality_level,
            'k': self.k
        }


class HarrisDetector(BaseDetector):
    """Harris コーナー検出器 (重なりによる非最大値抑制つき)"""

    def __init__(self,
                 block_size: int = 4,
                 aperture_size: int = 3,
                 min_response: float = 100,
                 k: float = 0.04,
                 apply_nms: bool = True,
                 **kwargs):
        """
        HarrisDetectorの初期化

        Args:
            block_size: 各画素で考慮する近傍ブロックのサイズ
            aperture_size: Sobel オペレータのアパーチャ (奇数)
            min_response: 正規化応答 [0, 255] におけるコーナーの最小値
            k: Harris パラメータ
            apply_nms: 非最大値抑制を行うかどうか
        """
        super().__init__(**kwargs)
        if aperture_size % 2 == 0 or not 1 <= aperture_size <= 31:
            raise ValueError("aperture_size must be odd and in [1, 31]")

        self.block_size = block_size
        self.aperture_size = aperture_size
        self.min_response = min_response
        self.k = k
        self.apply_nms = apply_nms

    def compute_response(self, gray: np.ndarray) -> np.ndarray:
        """
        Harris 応答を計算し [0, 255] に正規化する

        Args:
            gray: グレースケール画像

        Returns:
            np.ndarray: 正規化された応答 (float32)
        """
        dst = cv2.cornerHarris(gray, self.block_size, self.aperture_size, self.k,
                               borderType=cv2.BORDER_DEFAULT)
        return cv2.normalize(dst, None, 0, 255, cv2.NORM_MINMAX, cv2.CV_32FC1)

    def find_candidates(self, response: np.ndarray) -> List[KeyPoint]:
        """
        閾値を超える画素を候補の特徴点にする (行優先順)

        Args:
            response: 正規化された応答

        Returns:
            List[KeyPoint]: 候補の特徴点
        """
        size = 2.0 * self.aperture_size
        rows, cols = np.nonzero(response > self.min_response)
        return [
            KeyPoint(x=float(col), y=float(row), size=size,
                     response=float(response[row, col]))
            for row, col in zip(rows, cols)
        ]

    def detect(self, image: np.ndarray) -> List[KeyPoint]:
        """画像からHarrisコーナーを検出"""
        gray = self.preprocess_image(image)

        response = self.compute_response(gray)
        candidates = self.find_candidates(response)

        if self.apply_nms:
            keypoints = suppress_overlapping_keypoints(candidates)
        else:
            keypoints = candidates

        logger.debug(f"Harris detected {len(keypoints)} keypoints "
                     f"({len(candidates)} candidates)")
        return keypoints

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'block_size': self.block_size,
            'aperture_size': self.aperture_size,
            'min_response': self.min_response,
            'k': self.k,
            'apply_nms': self.apply_nms
        }


class FASTDetector(BaseDetector):
    """FAST コーナー検出器"""

    def __init__(self,
                 threshold: int = 30,
                 nonmax_suppression: bool = True,
                 **kwargs):
        """
        FASTDetectorの初期化

        Args:
            threshold: 中心画素と円周画素の輝度差の閾値
            nonmax_suppression: 非最大値抑制を行うかどうか
        """
        super().__init__(**kwargs)
        self.threshold = threshold
        self.nonmax_suppression = nonmax_suppression

        self.detector = cv2.FastFeatureDetector_create(
            threshold=threshold,
            nonmaxSuppression=nonmax_suppression
        )

    def detect(self, image: np.ndarray) -> List[KeyPoint]:
        """画像からFASTコーナーを検出"""
        gray = self.preprocess_image(image)
        keypoints = from_cv_keypoints(self.detector.detect(gray, None))
        logger.debug(f"FAST detected {len(keypoints)} keypoints")
        return keypoints

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'threshold': self.threshold,
            'nonmax_suppression': self.nonmax_suppression
        }


class BRISKDetector(BaseDetector):
    """BRISK 特徴点検出器"""

    def __init__(self,
                 threshold: int = 30,
                 octaves: int = 3,
                 pattern_scale: float = 1.0,
                 **kwargs):
        """
        BRISKDetectorの初期化

        Args:
            threshold: FAST/AGAST 検出閾値
            octaves: 検出オクターブ数 (0 で単一スケール)
            pattern_scale: サンプリングパターンのスケール
        """
        super().__init__(**kwargs)
        self.threshold = threshold
        self.octaves = octaves
        self.pattern_scale = pattern_scale

        self.detector = create_brisk(self.get_config())

    def detect(self, image: np.ndarray) -> List[KeyPoint]:
        """画像からBRISK特徴点を検出"""
        gray = self.preprocess_image(image)
        keypoints = from_cv_keypoints(self.detector.detect(gray, None))
        logger.debug(f"BRISK detected {len(keypoints)} keypoints")
        return keypoints

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'threshold': self.threshold,
            'octaves': self.octaves,
            'pattern_scale': self.pattern_scale
        }


class ORBDetector(BaseDetector):
    """ORB 特徴点検出器"""

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
        """
        ORBDetectorの初期化

        Args:
            n_features: 保持する特徴点の最大数
            scale_factor: 画像ピラミッドの縮小率
            n_levels: 画像ピラミッドのレベル数
            edge_threshold: 特徴点を検出しない画像端の幅
            first_level: 元画像を置くピラミッドのレベル
            wta_k: 記述子の各要素を作る点の数
            patch_size: 記述子のパッチサイズ
            fast_threshold: FAST閾値
        """
        super().__init__(**kwargs)
        self.n_features = n_features
        self.scale_factor = scale_factor
        self.n_levels = n_levels
        self.edge_threshold = edge_threshold
        self.first_level = first_level
        self.wta_k = wta_k
        self.patch_size = patch_size
        self.fast_threshold = fast_threshold

        self.detector = create_orb(self.get_config())

    def detect(self, image: np.ndarray) -> List[KeyPoint]:
        """画像からORB特徴点を検出"""
        gray = self.preprocess_image(image)
        keypoints = from_cv_keypoints(self.detector.detect(gray, None))
        logger.debug(f"ORB detected {len(keypoints)} keypoints")
        return keypoints

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


class AKAZEDetector(BaseDetector):
    """AKAZE 特徴点検出器"""

    def __init__(self,
                 threshold: float = 0.001,
                 n_octaves: int = 4,
                 n_octave_layers: int = 4,
                 **kwargs):
        """
        AKAZEDetectorの初期化

        Args:
            threshold: 検出器の応答閾値
            n_octaves: 最大オクターブ数
            n_octave_layers: 各オクターブのサブレベル数
        """
        super().__init__(**kwargs)
        self.threshold = threshold
        self.n_octaves = n_octaves
        self.n_octave_layers = n_octave_layers

        self.detector = create_akaze(self.get_config())

    def detect(self, image: np.ndarray) -> List[KeyPoint]:
        """画像からAKAZE特徴点を検出"""
        gray = self.preprocess_image(image)
        keypoints = from_cv_keypoints(self.detector.detect(gray, None))
        logger.debug(f"AKAZE detected {len(keypoints)} keypoints")
        return keypoints

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'threshold': self.threshold,
            'n_octaves': self.n_octaves,
            'n_octave_layers': self.n_octave_layers
        }


class SIFTDetector(BaseDetector):
    """SIFT 特徴点検出器"""

    def __init__(self,
                 n_features: int = 0,
                 n_octave_layers: int = 3,
                 contrast_threshold: float = 0.04,
                 edge_threshold: float = 10,
                 sigma: float = 1.6,
                 **kwargs):
        """
        SIFTDetectorの初期化

        Args:
            n_features: 保持する特徴点の最大数 (0 = 制限なし)
            n_octave_layers: 各オクターブのレイヤー数
            contrast_threshold: 弱い特徴を除去するための閾値
            edge_threshold: エッジ応答を除去するための閾値
            sigma: ガウシアンフィルタのシグマ値
        """
        super().__init__(**kwargs)
        self.n_features = n_features
        self.n_octave_layers = n_octave_layers
        self.contrast_threshold = contrast_threshold
        self.edge_threshold = edge_threshold
        self.sigma = sigma

        self.detector = create_sift(self.get_config())

    def detect(self, image: np.ndarray) -> List[KeyPoint]:
        """画像からSIFT特徴点を検出"""
        gray = self.preprocess_image(image)
        keypoints = from_cv_keypoints(self.detector.detect(gray, None))
        logger.debug(f"SIFT detected {len(keypoints)} keypoints")
        return keypoints

    def get_config(self) -> Dict[str, Any]:
        """現在の設定を取得"""
        return {
            'n_features': self.n_features,
            'n_octave_layers': self.n_octave_layers,
            'contrast_threshold': self.contrast_threshold,
            'edge_threshold': self.edge_threshold,
            'sigma': self.sigma
        }


def opencv_factory(name: str):
    """
    OpenCV の生成関数を取得する

    OpenCV 5 では BRISK や AKAZE がメイン名前空間から cv2.xfeatures2d に移ったため、
    cv2 になければ cv2.xfeatures2d から探す。

    Args:
        name: 生成関数の名前 ('BRISK_create' など)

    Raises:
        ImportError: どちらにも見つからない場合
    """
    factory = getattr(cv2, name, None)
    if factory is None:
        factory = getattr(getattr(cv2, 'xfeatures2d', None), name, None)
    if factory is None:
        raise ImportError(f"cv2.{name} is not available in OpenCV {cv2.__version__}. "
                          "Install with: pip install opencv-contrib-python")
    return factory


def create_brisk(config: Dict[str, Any]):
    """設定辞書から BRISK を生成 (検出器と記述子で共用)"""
    return opencv_factory('BRISK_create')(
        config['threshold'], config['octaves'], config['pattern_scale']
    )


def create_akaze(config: Dict[str, Any]):
    """設定辞書から AKAZE を生成 (検出器と記述子で共用)"""
    return opencv_factory('AKAZE_create')(
        threshold=config['threshold'],
        nOctaves=config['n_octaves'],
        nOctaveLayers=config['n_octave_layers']
    )


def create_orb(config: Dict[str, Any]):
    """設定辞書から cv2.ORB を生成 (検出器と記述子で共用)"""
    return cv2.ORB_create(
        nfeatures=config['n_features'],
        scaleFactor=config['scale_factor'],
        nlevels=config['n_levels'],
        edgeThreshold=config['edge_threshold'],
        firstLevel=config['first_level'],
        WTA_K=config['wta_k'],
        scoreType=cv2.ORB_HARRIS_SCORE,
        patchSize=config['patch_size'],
        fastThreshold=config['fast_threshold']
    )


def create_sift(config: Dict[str, Any]):
    """設定辞書から cv2.SIFT を生成 (検出器と記述子で共用)"""
    return cv2.SIFT_create(
        nfeatures=config['n_features'],
        nOctaveLayers=config['n_octave_layers'],
        contrastThreshold=config['contrast_threshold'],
        edgeThreshold=config['edge_threshold'],
        sigma=config['sigma']
    )
