from typing import Iterable, Tuple


# 旧来の定数名で使われていた接頭辞 (MAT_BF, SEL_KNN, DES_BINARY など)
LEGACY_PREFIXES: Tuple[str, ...] = ('MAT_', 'SEL_', 'DES_')


def normalize_type_name(name: str) -> str:
    """
    アルゴリズム名を正規化する

    大文字小文字、ハイフン、アンダースコアの違いを吸収し、
    旧来の接頭辞 (MAT_, SEL_, DES_) を取り除く。
    例: 'Shi-Tomasi' -> 'shitomasi', 'MAT_FLANN' -> 'flann'

    Args:
        name: アルゴリズム名

    Returns:
        str: 正規化された名前

    Raises:
        TypeError: 文字列以外が渡された場合
    """
    if not isinstance(name, str):
        raise TypeError(f"Algorithm name must be a string, got {type(name).__name__}")

    key = name.strip()
    upper = key.upper()
    for prefix in LEGACY_PREFIXES:
        if upper.startswith(prefix):
            key = key[len(prefix):]
            break

    return key.lower().replace('-', '').replace('_', '').replace(' ', '')


def resolve_type_name(name: str, available: Iterable[str], kind: str) -> str:
    """
    名前を正規化し、利用可能な候補に含まれることを確認する

    Args:
        name: アルゴリズム名
        available: 利用可能な (正規化済みの) 名前
        kind: エラーメッセージ用の種別 ('detector' など)

    Returns:
        str: 正規化された名前

    Raises:
        ValueError: 未知の名前が指定された場合
    """
    available = list(available)
    key = normalize_type_name(name)
    if key not in available:
        raise ValueError(f"Unknown {kind} type: {name}. "
                         f"Available types: {available}")
    return key
