"""
キーワードのトークン分割と部分一致スコア計算

規則のキーワードを区切り文字で分割し、メタデータの値に含まれる
トークンの割合を部分一致スコアとして算出します。
"""

from dataclasses import dataclass
from typing import List

from .models import DEFAULT_TOKEN_SEPARATOR


@dataclass
class PartialMatchScore:
    """部分一致スコア"""
    score: float
    matched_tokens: List[str]
    total_tokens: int


def tokenize_keyword(keyword: str, separator: str = DEFAULT_TOKEN_SEPARATOR) -> List[str]:
    """
    キーワードをトークンに分割

    Args:
        keyword: 規則のキーワード
        separator: トークン区切り文字（空文字の場合はカンマ）

    Returns:
        前後の空白を除去した空でないトークンのリスト（出現順）
    """
    pieces = keyword.split(separator or DEFAULT_TOKEN_SEPARATOR)
    return [piece.strip() for piece in pieces if piece.strip()]


def calculate_partial_match_score(keyword: str, field_value: str,
                                  separator: str = DEFAULT_TOKEN_SEPARATOR) -> PartialMatchScore:
    """
    部分一致スコアを計算

    各トークンがフィールド値に部分文字列として含まれるかを大文字小文字を
    区別して判定し、含まれるトークン数 / 全トークン数 をスコアとします。

    Args:
        keyword: 規則のキーワード
        field_value: メタデータの値
        separator: トークン区切り文字

    Returns:
        部分一致スコア（トークンがない場合はスコア0）
    """
    tokens = tokenize_keyword(keyword, separator)
    if not tokens:
        return PartialMatchScore(score=0.0, matched_tokens=[], total_tokens=0)

    matched_tokens = [token for token in tokens if token in field_value]

    return PartialMatchScore(
        score=len(matched_tokens) / len(tokens),
        matched_tokens=matched_tokens,
        total_tokens=len(tokens)
    )
