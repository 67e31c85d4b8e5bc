"""
メタデータ抽出モジュール

画像ファイルからPNGテキストチャンクとEXIF/XMP/IPTCメタデータを読み取り、
マッチングに使用する1つの辞書に統合します。
1ファイルの抽出失敗は他のファイルの処理に影響しません。
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .exceptions import ExifReadError
from .exif_reader import ExifReader
from .file_scanner import FileScanner
from .metadata import merge_metadata, normalize_exif_fields
from .png_parser import is_png, parse_png_text_chunks


class MetadataExtractor:
    """画像ファイルのメタデータ抽出クラス"""

    def __init__(self, exif_reader: Optional[ExifReader] = None,
                 use_exiftool: bool = True):
        """
        MetadataExtractorを初期化

        Args:
            exif_reader: Exif読み取りクラス（Noneの場合は新規作成を試みる）
            use_exiftool: ExifToolを使用しない場合False（PNGテキストチャンクのみ）
        """
        self.logger = logging.getLogger(__name__)
        self.file_scanner = FileScanner()
        self.exif_reader = exif_reader

        if self.exif_reader is None and use_exiftool:
            try:
                self.exif_reader = ExifReader()
            except ExifReadError:
                self.logger.warning("ExifToolが利用できないため、PNGテキストチャンクのみを読み取ります")

    def extract(self, file_path: Path) -> Dict[str, str]:
        """
        1つのファイルからメタデータを抽出

        Args:
            file_path: 画像ファイルのパス

        Returns:
            フィールド名 → 文字列 の辞書（PNGフィールドが先、EXIFフィールドが後）
        """
        png_fields: Dict[str, str] = {}
        exif_fields: Dict[str, str] = {}

        try:
            data = file_path.read_bytes()
        except OSError as e:
            self.logger.warning(f"ファイル読み込みエラー: {file_path} - {e}")
            data = b''

        # 1. PNGテキストチャンク
        if is_png(data) or self.file_scanner.is_png_file(file_path):
            try:
                png_fields = parse_png_text_chunks(data)
            except Exception as e:
                self.logger.warning(f"PNGメタデータ解析エラー: {file_path} - {e}")

        # 2. EXIF/XMP/IPTC
        if self.exif_reader is not None:
            try:
                exif_fields = normalize_exif_fields(self.exif_reader.read_metadata(file_path))
            except ExifReadError as e:
                self.logger.warning(f"EXIFメタデータ解析エラー（処理継続）: {file_path} - {e}")

        metadata = merge_metadata(png_fields, exif_fields)
        self.logger.debug(f"メタデータ抽出完了: {file_path.name} ({len(metadata)}フィールド)")
        return metadata

    def extract_many(self, file_paths: Sequence[Path], max_workers: int = 1,
                     cancel_event: Optional[threading.Event] = None,
                     progress_logger=None) -> List[Tuple[Path, Dict[str, str]]]:
        """
        複数ファイルからメタデータを抽出

        キャンセルは各ファイルの処理開始前に確認します（処理中のファイルは中断しません）。

        Args:
            file_paths: 画像ファイルのパスのリスト
            max_workers: 最大ワーカー数（1以下の場合は逐次処理）
            cancel_event: セットされると未着手のファイルをスキップするイベント
            progress_logger: 進捗表示用のロガー

        Returns:
            処理済みファイルの (パス, メタデータ) のリスト（入力と同じ順序）
        """
        if max_workers <= 1:
            return self._extract_sequential(file_paths, cancel_event, progress_logger)

        results: Dict[int, Dict[str, str]] = {}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {
                executor.submit(self._extract_unless_cancelled, file_path, cancel_event): i
                for i, file_path in enumerate(file_paths)
            }

            for done, future in enumerate(as_completed(future_to_index), start=1):
                index = future_to_index[future]
                file_path = file_paths[index]
                try:
                    metadata = future.result()
                except Exception as e:
                    self.logger.error(f"メタデータ抽出エラー: {file_path} - {e}")
                    metadata = {}

                if metadata is not None:
                    results[index] = metadata
                if progress_logger:
                    progress_logger.log_reading_progress(len(file_paths), done, file_path)

        self.logger.info(f"並列抽出完了: {len(results)}/{len(file_paths)}ファイル")
        return [(file_paths[i], results[i]) for i in sorted(results)]

    def _extract_sequential(self, file_paths: Sequence[Path],
                            cancel_event: Optional[threading.Event],
                            progress_logger) -> List[Tuple[Path, Dict[str, str]]]:
        """1ファイルずつメタデータを抽出"""
        results = []

        for i, file_path in enumerate(file_paths):
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info(f"抽出をキャンセルしました: {i}/{len(file_paths)}ファイル処理済み")
                break

            if progress_logger:
                progress_logger.log_reading_progress(len(file_paths), i + 1, file_path)

            try:
                results.append((file_path, self.extract(file_path)))
            except Exception as e:
                self.logger.error(f"メタデータ抽出エラー: {file_path} - {e}")
                results.append((file_path, {}))

        return results

    def _extract_unless_cancelled(self, file_path: Path,
                                  cancel_event: Optional[threading.Event]) -> Optional[Dict[str, str]]:
        """キャンセルされていなければ抽出（キャンセル済みの場合はNone）"""
        if cancel_event is not None and cancel_event.is_set():
            return None
        return self.extract(file_path)
