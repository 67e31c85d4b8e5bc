"""
リネーム処理管理モジュール

画像ディレクトリのスキャン、メタデータ抽出、規則の適用、書き出しまでの
一連の処理をコマンドライン向けにまとめて提供します。
"""

import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .exporter import Exporter
from .file_scanner import FileScanner
from .image_collection import ImageCollection
from .logger import create_default_logger, get_default_log_file
from .matcher import Matcher
from .metadata_extractor import MetadataExtractor
from .models import (
    DEFAULT_LIMITS, CopyResult, ExportResult, ImageFile, PartialMatchSettings,
    ProcessingStats, Rule
)
from .rule_file import default_export_file_name, load_rules_file, save_rules_file
from .rule_manager import RuleManager


class RenameManager:
    """リネーム処理を担当するクラス"""

    def __init__(self, use_exiftool: bool = True):
        """
        RenameManagerを初期化

        Args:
            use_exiftool: ExifToolでEXIF/XMP/IPTCを読み取る場合True
        """
        self.use_exiftool = use_exiftool
        self.file_scanner = FileScanner()
        self.exporter = Exporter()
        self.progress_logger = None

    def preview(self, image_dir: Path, rules_file: Path, recursive: bool,
                settings: PartialMatchSettings, verbose: bool,
                max_workers: int = 1) -> List[ImageFile]:
        """
        規則を適用し、予定されるファイル名の一覧を表示

        Returns:
            マッチング済みの画像のリスト
        """
        self._init_logger(verbose)
        self.progress_logger.log_processing_start([image_dir])

        try:
            images, stats = self._load_and_match(image_dir, rules_file, recursive, settings, max_workers)
            for image in images:
                self._log_image_result(image)

            self.progress_logger.log_processing_complete(stats)
            return images

        except Exception as e:
            self.progress_logger.log_error(image_dir, f"プレビュー処理エラー: {e}", e)
            raise

    def export_archives(self, image_dir: Path, rules_file: Path, output_dir: Path,
                        recursive: bool, settings: PartialMatchSettings, verbose: bool,
                        batch_size: int = DEFAULT_LIMITS.batch_size,
                        max_workers: int = 1) -> ExportResult:
        """
        マッチした画像を新しいファイル名でZIPアーカイブに書き出し

        Returns:
            エクスポート結果
        """
        self._init_logger(verbose)
        self.progress_logger.log_processing_start([image_dir], output_dir)

        try:
            images, stats = self._load_and_match(image_dir, rules_file, recursive, settings, max_workers)
            matched = [image for image in images if image.new_file_name]

            if not matched:
                self.progress_logger.log_info("マッチした画像がないため、書き出しを行いません。")
                self.progress_logger.log_processing_complete(stats)
                return ExportResult(archives=[], files_written=0, batches=0)

            self.progress_logger.log_export_start(len(matched))
            start_time = time.time()

            result = self.exporter.export_zip_batches(
                matched, output_dir, batch_size=batch_size, progress_logger=self.progress_logger
            )

            self.progress_logger.log_export_complete(result.files_written, result.archives, time.time() - start_time)

            stats.files_exported = result.files_written
            self.progress_logger.log_processing_complete(stats)
            return result

        except Exception as e:
            self.progress_logger.log_error(output_dir, f"ZIP書き出しエラー: {e}", e)
            raise

    def copy_renamed(self, image_dir: Path, rules_file: Path, target_dir: Path,
                     recursive: bool, settings: PartialMatchSettings, verbose: bool,
                     max_workers: int = 1) -> CopyResult:
        """
        マッチした画像を新しいファイル名でディレクトリにコピー

        Returns:
            コピー結果
        """
        self._init_logger(verbose)
        self.progress_logger.log_processing_start([image_dir], target_dir)

        try:
            images, stats = self._load_and_match(image_dir, rules_file, recursive, settings, max_workers)
            matched = [image for image in images if image.new_file_name]

            if not matched:
                self.progress_logger.log_info("マッチした画像がないため、コピーを行いません。")
                self.progress_logger.log_processing_complete(stats)
                return CopyResult(success=0, skipped=0, failed=0, errors=[])

            self.progress_logger.log_export_start(len(matched))
            start_time = time.time()

            result = self.exporter.copy_to_directory(matched, target_dir, self.progress_logger)

            self.progress_logger.log_export_complete(result.success, [target_dir], time.time() - start_time)
            self.progress_logger.log_info(f"  - スキップ（既存ファイル）: {result.skipped}個")
            self.progress_logger.log_info(f"  - 失敗: {result.failed}個")

            stats.files_exported = result.success
            stats.errors.extend((str(path), message) for path, message in result.errors)
            self.progress_logger.log_processing_complete(stats)
            return result

        except Exception as e:
            self.progress_logger.log_error(target_dir, f"コピー処理エラー: {e}", e)
            raise

    def show_metadata(self, file_path: Path, verbose: bool = False) -> Dict[str, str]:
        """
        1つの画像ファイルのメタデータを表示

        Returns:
            フィールド名 → 値 の辞書
        """
        self._init_logger(verbose)

        extractor = MetadataExtractor(use_exiftool=self.use_exiftool)
        metadata = extractor.extract(file_path)

        self.progress_logger.log_info(f"{file_path.name}: {len(metadata)}フィールド")
        self.progress_logger.log_info("")

        for field_name, value in metadata.items():
            if not verbose and len(value) > 200:
                value = value[:200] + f"... ({len(value)}文字)"
            self.progress_logger.log_info(f"{field_name}: {value}")

        return metadata

    def normalize_rules(self, rules_file: Path, output: Optional[Path] = None,
                        verbose: bool = False) -> List[Rule]:
        """
        規則ファイルを読み込み、正規化して表示（出力先指定時は書き出し）

        ファイル名の正規化と重複キーワードの除去を行います。
        出力先にディレクトリを指定した場合は keyword_rules_YYYY-MM-DD.txt を作成します。

        Returns:
            正規化された規則のリスト
        """
        self._init_logger(verbose)

        rule_manager = RuleManager(load_rules_file(rules_file))
        rules = rule_manager.rules

        self.progress_logger.log_info(f"規則数: {len(rules)}件")
        for i, rule in enumerate(rules, 1):
            keyword = rule.keyword if verbose or len(rule.keyword) <= 60 else rule.keyword[:60] + "..."
            self.progress_logger.log_info(f"{i}. {rule.new_file_name}")
            self.progress_logger.log_info(f"   {keyword}")

        if output is not None:
            if output.is_dir():
                output = output / default_export_file_name()
            save_rules_file(rules, output)
            self.progress_logger.log_info(f"規則ファイルを書き出しました: {output}")

        return rules

    def _init_logger(self, verbose: bool) -> None:
        """プログレスロガーを初期化"""
        log_file = get_default_log_file() if verbose else None
        self.progress_logger = create_default_logger(verbose=verbose, log_file=log_file)

    def _load_and_match(self, image_dir: Path, rules_file: Path, recursive: bool,
                        settings: PartialMatchSettings,
                        max_workers: int) -> Tuple[List[ImageFile], ProcessingStats]:
        """
        規則の読み込み、画像の取り込み、マッチングを実行

        Returns:
            (マッチング済みの画像リスト, 処理統計) のタプル
        """
        # 1. 規則の読み込み
        rules = load_rules_file(rules_file)
        enabled_count = sum(1 for rule in rules if rule.enabled)
        self.progress_logger.log_info(f"規則読み込み: {len(rules)}件（有効: {enabled_count}件）")
        if not rules:
            self.progress_logger.log_warning("有効な規則がありません。規則ファイルの形式を確認してください (#ファイル名 / キーワード)")

        # 2. 画像ファイルのスキャン
        self.progress_logger.log_info(f"画像ファイルをスキャン中: {image_dir}")
        image_files = self.file_scanner.scan_image_files(image_dir, recursive)
        self.progress_logger.log_info(f"画像ファイル発見: {len(image_files)}個")

        # 3. メタデータの読み取り
        collection = ImageCollection(MetadataExtractor(use_exiftool=self.use_exiftool))
        self.progress_logger.log_reading_start(len(image_files))
        start_time = time.time()

        # 進捗表示は詳細モードのみ
        progress_logger = self.progress_logger if self.progress_logger.config.verbose else None
        ingest = collection.add_files(image_files, max_workers=max_workers,
                                      progress_logger=progress_logger)

        self.progress_logger.log_reading_complete(len(ingest.added), time.time() - start_time)
        if ingest.truncated:
            self.progress_logger.log_warning(f"枚数制限により{ingest.truncated}個の画像を除外しました")
        for file_path, reason in ingest.skipped:
            self.progress_logger.log_debug(f"スキップ: {file_path} - {reason}")

        # 4. マッチング
        start_time = time.time()
        images = collection.apply_rules(rules, settings)
        statistics = Matcher(settings).get_match_statistics(images)
        self.progress_logger.log_matching_complete(statistics, time.time() - start_time)

        stats = ProcessingStats(
            images_found=len(image_files),
            images_loaded=len(images),
            exact_matches=statistics['exact_matches'],
            partial_matches=statistics['partial_matches'],
            unmatched=statistics['unmatched'],
            files_exported=0,
            errors=[(str(path), reason) for path, reason in ingest.skipped]
        )
        return images, stats

    def _log_image_result(self, image: ImageFile) -> None:
        """1画像のマッチング結果を表示"""
        if not image.is_matched:
            self.progress_logger.log_info(f"✗ {image.original_name}")
            return

        if image.is_partial_match:
            label = f"部分一致 {image.match_score * 100:.0f}%"
        else:
            label = "完全一致"
        self.progress_logger.log_info(
            f"✓ {image.original_name} -> {image.new_file_name} ({label}: {image.matched_field})"
        )

        for candidate in image.candidate_matches or []:
            self.progress_logger.log_info(
                f"    候補: {candidate.rule.new_file_name} "
                f"({len(candidate.matched_tokens)}/{candidate.total_tokens}トークン, {candidate.matched_field})"
            )
