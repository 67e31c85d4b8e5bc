"""
エクスポート処理モジュール

マッチした画像を新しいファイル名でZIPアーカイブ（バッチ単位）または
ディレクトリに書き出します。同じバッチ内のファイル名の重複は連番で解決します。
"""

import logging
import shutil
import time
import zipfile
from pathlib import Path
from typing import List, Optional, Tuple

from .exceptions import ArchiveError
from .file_namer import resolve_batch_names
from .path_validator import PathValidator
from .models import DEFAULT_LIMITS, CopyResult, ExportResult, ImageFile


class Exporter:
    """リネームした画像を書き出すクラス"""

    COMPRESSION_LEVEL = 6
    DISK_SPACE_MARGIN = 10 * 1024 * 1024  # 10MB

    def __init__(self):
        """Exporterを初期化"""
        self.logger = logging.getLogger(__name__)

    def export_zip_batches(self, images: List[ImageFile], output_dir: Path,
                           batch_size: int = DEFAULT_LIMITS.batch_size,
                           progress_logger=None) -> ExportResult:
        """
        マッチした画像をバッチごとのZIPアーカイブに書き出し

        Args:
            images: 画像のリスト（新しいファイル名がないものは対象外）
            output_dir: アーカイブの出力先ディレクトリ
            batch_size: 1アーカイブあたりのファイル数

        Returns:
            エクスポート結果

        Raises:
            ArchiveError: アーカイブの作成に失敗した場合
        """
        matched = [image for image in images if image.new_file_name]
        if not matched:
            self.logger.info("エクスポート対象の画像がありません")
            return ExportResult(archives=[], files_written=0, batches=0)

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveError(f"出力先ディレクトリ作成失敗: {output_dir} - {e}") from e

        total_batches = (len(matched) + batch_size - 1) // batch_size
        timestamp = int(time.time() * 1000)
        archives: List[Path] = []
        files_written = 0

        self.logger.info(f"ZIPエクスポート開始: {len(matched)}個のファイル, {total_batches}バッチ")

        for batch in range(total_batches):
            batch_images = matched[batch * batch_size:(batch + 1) * batch_size]

            if total_batches > 1:
                archive_name = f"renamed_images_batch{batch + 1}_{timestamp}.zip"
            else:
                archive_name = f"renamed_images_{timestamp}.zip"
            archive_path = output_dir / archive_name

            self._write_archive(archive_path, batch_images)
            archives.append(archive_path)
            files_written += len(batch_images)

            if progress_logger:
                progress_logger.log_export_progress(len(matched), files_written, archive_path)
            self.logger.debug(f"アーカイブ作成: {archive_path.name} ({len(batch_images)}ファイル)")

        self.logger.info(f"ZIPエクスポート完了: {len(archives)}個のアーカイブ")
        return ExportResult(archives=archives, files_written=files_written, batches=total_batches)

    def _write_archive(self, archive_path: Path, batch_images: List[ImageFile]) -> None:
        """
        1バッチ分のアーカイブを作成

        途中で失敗した場合は書きかけのアーカイブを削除して ArchiveError を送出します。
        """
        names = resolve_batch_names(
            [(image.new_file_name, image.original_name) for image in batch_images]
        )

        try:
            with zipfile.ZipFile(archive_path, 'w', compression=zipfile.ZIP_DEFLATED,
                                 compresslevel=self.COMPRESSION_LEVEL) as archive:
                for image, name in zip(batch_images, names):
                    archive.write(image.path, arcname=name)
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            archive_path.unlink(missing_ok=True)
            error_msg = f"アーカイブ作成エラー: {archive_path.name} - {e}"
            self.logger.error(error_msg)
            raise ArchiveError(error_msg) from e

    def copy_to_directory(self, images: List[ImageFile], target_dir: Path,
                          progress_logger=None) -> CopyResult:
        """
        マッチした画像を新しいファイル名でディレクトリにコピー

        Args:
            images: 画像のリスト（新しいファイル名がないものは対象外）
            target_dir: コピー先ディレクトリ

        Returns:
            コピー結果
        """
        matched = [image for image in images if image.new_file_name]
        success_count = 0
        skipped_count = 0
        failed_count = 0
        errors: List[Tuple[Path, str]] = []

        self.logger.info(f"ファイルコピー開始: {len(matched)}個のファイル -> {target_dir}")

        # ターゲットディレクトリが存在しない場合は作成
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            error_msg = f"ターゲットディレクトリ作成失敗: {e}"
            self.logger.error(error_msg)
            return CopyResult(success=0, skipped=0, failed=len(matched), errors=[(target_dir, error_msg)])

        names = resolve_batch_names([(image.new_file_name, image.original_name) for image in matched])

        for i, (image, name) in enumerate(zip(matched, names)):
            if progress_logger:
                progress_logger.log_export_progress(len(matched), i + 1, image.path)

            result, error_msg = self._copy_single_file(image.path, target_dir / name)

            if result == 'success':
                success_count += 1
            elif result == 'skipped':
                skipped_count += 1
            else:
                failed_count += 1
                errors.append((image.path, error_msg))
                if progress_logger:
                    progress_logger.log_error(image.path, error_msg)

        self.logger.info(
            f"ファイルコピー完了: 成功={success_count}, "
            f"スキップ={skipped_count}, 失敗={failed_count}"
        )
        return CopyResult(success=success_count, skipped=skipped_count, failed=failed_count, errors=errors)

    def _copy_single_file(self, source_path: Path, target_path: Path) -> Tuple[str, Optional[str]]:
        """
        単一ファイルをコピー

        Returns:
            (結果文字列, エラーメッセージ) のタプル
            結果文字列: 'success', 'skipped', 'failed'
        """
        if not source_path.exists():
            error_msg = "ソースファイルが存在しません"
            self.logger.warning(f"コピースキップ: {source_path} - {error_msg}")
            return 'failed', error_msg

        # 既存ファイルのスキップ処理
        if target_path.exists():
            self.logger.debug(f"既存ファイルをスキップ: {target_path.name}")
            return 'skipped', None

        try:
            if not PathValidator.check_disk_space(target_path.parent,
                                                 source_path.stat().st_size + self.DISK_SPACE_MARGIN):
                error_msg = "ディスク容量不足"
                self.logger.error(f"コピー失敗: {source_path} - {error_msg}")
                return 'failed', error_msg

            # shutil.copy2を使用してメタデータも保持
            shutil.copy2(source_path, target_path)
            self.logger.debug(f"コピー成功: {source_path.name} -> {target_path}")
            return 'success', None
        except PermissionError as e:
            error_msg = f"アクセス権限エラー: {e}"
            self.logger.error(f"コピー失敗: {source_path} - {error_msg}")
            return 'failed', error_msg
        except OSError as e:
            error_msg = f"ファイル操作エラー: {e}"
            self.logger.error(f"コピー失敗: {source_path} - {error_msg}")
            return 'failed', error_msg
