"""
画像コレクション管理モジュール

取り込んだ画像とマッチング結果のスナップショットを保持します。
規則の適用は常に全画像を再評価し、完了した結果でスナップショット全体を置き換えます。
"""

import logging
import threading
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .exceptions import ValidationError
from .file_scanner import FileScanner
from .matcher import Matcher, select_candidate
from .metadata_extractor import MetadataExtractor
from .models import (
    DEFAULT_LIMITS, FilterMode,
    ImageFile, IngestResult, MatchCandidate, PartialMatchSettings, ProcessingLimits, Rule
)


class ImageCollection:
    """画像とマッチング結果を管理するクラス"""

    def __init__(self, extractor: Optional[MetadataExtractor] = None,
                 limits: ProcessingLimits = DEFAULT_LIMITS):
        """
        ImageCollectionを初期化

        Args:
            extractor: メタデータ抽出クラス（Noneの場合は取り込み時に作成）
            limits: 取り込み制限
        """
        self.extractor = extractor
        self.limits = limits
        self.file_scanner = FileScanner()
        self.logger = logging.getLogger(__name__)
        self._images: List[ImageFile] = []
        self._total_size = 0
        self._lock = threading.Lock()

    @property
    def images(self) -> List[ImageFile]:
        """現在のスナップショット"""
        return list(self._images)

    @property
    def total_size(self) -> int:
        return self._total_size

    def __len__(self) -> int:
        return len(self._images)

    def get(self, image_id: str) -> Optional[ImageFile]:
        return next((image for image in self._images if image.id == image_id), None)

    def add_files(self, file_paths: Sequence[Path], max_workers: int = 1,
                  cancel_event: Optional[threading.Event] = None,
                  progress_logger=None) -> IngestResult:
        """
        画像ファイルを取り込み、メタデータを抽出

        枚数制限を超える場合は残り枚数まで切り詰め、切り捨てた数を結果に含めます。
        単一ファイルのサイズ制限を超えるファイルはスキップし、総容量制限に
        達した時点で以降のファイルはスキップします。

        Args:
            file_paths: 取り込むファイルのパスのリスト
            max_workers: メタデータ抽出の最大ワーカー数
            cancel_event: 抽出を途中で止めるためのイベント
            progress_logger: 進捗表示用のロガー

        Returns:
            取り込み結果
        """
        result = IngestResult()

        image_paths = []
        for file_path in file_paths:
            if self.file_scanner.is_image_file(file_path):
                image_paths.append(file_path)
            else:
                result.skipped.append((file_path, "画像ファイルではありません"))

        # 枚数制限
        allowed = max(self.limits.max_images - len(self._images), 0)
        if len(image_paths) > allowed:
            result.truncated = len(image_paths) - allowed
            self.logger.warning(
                f"最大{self.limits.max_images}枚まで取り込めます。"
                f"現在{len(self._images)}枚、追加可能: {allowed}枚"
            )
            image_paths = image_paths[:allowed]

        # サイズ制限
        valid_paths: List[Path] = []
        sizes: Dict[Path, int] = {}
        added_size = 0

        for i, file_path in enumerate(image_paths):
            try:
                size = file_path.stat().st_size
            except OSError as e:
                result.skipped.append((file_path, f"ファイル情報取得エラー: {e}"))
                continue

            if size > self.limits.max_file_size:
                self.logger.warning(f"ファイルサイズ超過: {file_path.name} ({size / 1024 / 1024:.1f}MB)")
                result.skipped.append((file_path, "ファイルサイズ制限を超えています"))
                continue

            if self._total_size + added_size + size > self.limits.max_total_size:
                self.logger.warning("総容量制限に達しました")
                result.skipped.extend(
                    (rest, "総容量制限に達しました") for rest in image_paths[i:]
                )
                break

            valid_paths.append(file_path)
            sizes[file_path] = size
            added_size += size

        if not valid_paths:
            return result

        if self.extractor is None:
            self.extractor = MetadataExtractor()

        extracted = self.extractor.extract_many(
            valid_paths, max_workers=max_workers,
            cancel_event=cancel_event, progress_logger=progress_logger
        )
        result.cancelled = len(extracted) < len(valid_paths)

        result.added = [
            ImageFile(
                id=str(uuid.uuid4()),
                path=file_path,
                original_name=file_path.name,
                file_size=sizes[file_path],
                metadata=metadata
            )
            for file_path, metadata in extracted
        ]

        with self._lock:
            self._images = self._images + result.added
            self._total_size += sum(image.file_size for image in result.added)

        self.logger.info(f"画像取り込み完了: {len(result.added)}枚 (スキップ: {len(result.skipped)}枚)")
        return result

    def apply_rules(self, rules: List[Rule],
                    settings: Optional[PartialMatchSettings] = None) -> List[ImageFile]:
        """
        規則を全画像に適用してスナップショットを置き換え

        Args:
            rules: 規則のリスト（優先順位順）
            settings: 部分マッチング設定

        Returns:
            新しいスナップショット
        """
        with self._lock:
            self._images = Matcher(settings).apply_rules(self._images, rules)
            return list(self._images)

    def select_match(self, image_id: str, candidate: MatchCandidate) -> ImageFile:
        """
        画像のマッチング結果を候補で置き換え

        Raises:
            ValidationError: 画像が見つからない場合
        """
        with self._lock:
            image = self.get(image_id)
            if image is None:
                raise ValidationError(f"画像が見つかりません: {image_id}")

            updated = select_candidate(image, candidate)
            self._images = [updated if img.id == image_id else img for img in self._images]

        self.logger.debug(f"候補を選択: {image.original_name} -> {updated.new_file_name}")
        return updated

    def remove_image(self, image_id: str) -> bool:
        """画像を削除（削除した場合True）"""
        return self.remove_images([image_id]) > 0

    def remove_images(self, image_ids: Iterable[str]) -> int:
        """複数の画像を削除し、削除した枚数を返す"""
        ids = set(image_ids)
        return self._remove_where(lambda image: image.id in ids)

    def clear_unmatched(self) -> int:
        """マッチしていない画像をすべて削除し、削除した枚数を返す"""
        return self._remove_where(lambda image: not image.is_matched)

    def clear(self) -> None:
        """すべての画像を削除"""
        with self._lock:
            self._images = []
            self._total_size = 0

    def _remove_where(self, predicate) -> int:
        with self._lock:
            removed = [image for image in self._images if predicate(image)]
            self._images = [image for image in self._images if not predicate(image)]
            self._total_size -= sum(image.file_size for image in removed)
        return len(removed)

    def filter_images(self, mode: FilterMode = FilterMode.ALL) -> List[ImageFile]:
        """表示モードで画像を絞り込み（'matched' などの文字列も受け付ける）"""
        try:
            mode = FilterMode(mode)
        except ValueError:
            raise ValidationError(f"不明な絞り込みモード: {mode}")

        if mode is FilterMode.MATCHED:
            return [image for image in self._images if image.is_matched]
        if mode is FilterMode.UNMATCHED:
            return [image for image in self._images if not image.is_matched]
        return self.images

    def matched_images(self) -> List[ImageFile]:
        """新しいファイル名が決まっている画像（エクスポート対象）"""
        return [image for image in self._images if image.new_file_name]

    def match_counts(self) -> Dict[str, int]:
        """規則IDごとのマッチ数"""
        counts: Dict[str, int] = {}
        for image in self._images:
            if image.matched_rule is not None:
                counts[image.matched_rule.id] = counts.get(image.matched_rule.id, 0) + 1
        return counts
