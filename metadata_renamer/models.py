"""
データモデル定義

Metadata Renamerで使用するデータクラスを定義します。
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .exceptions import ValidationError


# 部分マッチングの最小一致率の許容範囲
MIN_MATCH_RATIO_LOWER = 0.10
MIN_MATCH_RATIO_UPPER = 0.99

DEFAULT_TOKEN_SEPARATOR = ','
DEFAULT_MIN_MATCH_RATIO = 0.7


class FilterMode(str, Enum):
    """画像の絞り込みモード"""
    ALL = 'all'
    MATCHED = 'matched'
    UNMATCHED = 'unmatched'


@dataclass
class Rule:
    """キーワード規則"""
    id: str
    keyword: str
    new_file_name: str  # 拡張子なしのベース名（正規化済み）
    enabled: bool = True
    partial_match: bool = False  # 規則単位の部分マッチング


@dataclass
class PartialMatchSettings:
    """部分マッチング設定"""
    global_enabled: bool = False
    min_match_ratio: float = DEFAULT_MIN_MATCH_RATIO
    token_separator: str = DEFAULT_TOKEN_SEPARATOR

    def __post_init__(self):
        if not (MIN_MATCH_RATIO_LOWER <= self.min_match_ratio <= MIN_MATCH_RATIO_UPPER):
            raise ValidationError(
                f"最小一致率は{MIN_MATCH_RATIO_LOWER}〜{MIN_MATCH_RATIO_UPPER}の範囲で指定してください: "
                f"{self.min_match_ratio}"
            )
        if not self.token_separator:
            self.token_separator = DEFAULT_TOKEN_SEPARATOR


@dataclass
class MatchCandidate:
    """部分マッチングの候補"""
    rule: Rule
    matched_field: str
    match_score: float
    matched_tokens: List[str]
    total_tokens: int


@dataclass
class ImageFile:
    """画像ファイルとマッチング結果"""
    id: str
    path: Path
    original_name: str
    file_size: int
    metadata: Dict[str, str]
    matched_rule: Optional[Rule] = None
    matched_field: Optional[str] = None
    new_file_name: Optional[str] = None
    match_score: Optional[float] = None
    candidate_matches: Optional[List[MatchCandidate]] = None
    is_partial_match: Optional[bool] = None

    @property
    def is_matched(self) -> bool:
        return self.matched_rule is not None


@dataclass(frozen=True)
class ProcessingLimits:
    """取り込み・エクスポートの制限"""
    max_images: int = 3000
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    max_total_size: int = 6 * 1024 * 1024 * 1024  # 6GB
    batch_size: int = 100  # ZIPアーカイブ1つあたりのファイル数
    max_keyword_length: int = 5000
    max_file_name_length: int = 200


DEFAULT_LIMITS = ProcessingLimits()


@dataclass
class RuleResult:
    """規則の作成・編集結果"""
    rule: Optional[Rule]
    error: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.rule is not None and self.error is None


@dataclass
class IngestResult:
    """画像取り込み結果"""
    added: List[ImageFile] = field(default_factory=list)
    skipped: List[Tuple[Path, str]] = field(default_factory=list)  # (file_path, reason)
    truncated: int = 0  # 枚数制限で切り捨てられたファイル数
    cancelled: bool = False


@dataclass
class ExportResult:
    """ZIPエクスポート結果"""
    archives: List[Path]
    files_written: int
    batches: int


@dataclass
class CopyResult:
    """コピー結果"""
    success: int
    skipped: int
    failed: int
    errors: List[Tuple[Path, str]]


@dataclass
class ProcessingStats:
    """処理統計情報"""
    images_found: int
    images_loaded: int
    exact_matches: int
    partial_matches: int
    unmatched: int
    files_exported: int
    errors: List[Tuple[str, str]]  # (file_path, error_message)
