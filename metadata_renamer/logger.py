"""
ロギングシステム

Metadata Renamerのロギング機能を提供します。
標準出力とファイル出力の両方をサポートし、進捗表示とエラーログを管理します。
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from dataclasses import dataclass

from .models import ProcessingStats


@dataclass
class LogConfig:
    """ログ設定"""
    console_level: int = logging.INFO
    file_level: int = logging.DEBUG
    log_file: Optional[Path] = None
    verbose: bool = False


class ProgressLogger:
    """進捗表示とロギングを管理するクラス"""

    def __init__(self, config: LogConfig):
        self.config = config
        self.logger = self._setup_logger()
        self._start_time: Optional[datetime] = None

    def _setup_logger(self) -> logging.Logger:
        """ロガーのセットアップ"""
        logger = logging.getLogger('metadata_renamer')
        logger.setLevel(logging.DEBUG)

        # 既存のハンドラーをクリア
        logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.config.console_level)
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

        if self.config.log_file:
            self.config.log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(self.config.log_file, encoding='utf-8')
            file_handler.setLevel(self.config.file_level)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            logger.addHandler(file_handler)

        return logger

    def log_processing_start(self, source_dirs: List[Path], output_dir: Optional[Path] = None):
        """処理開始時のサマリー表示"""
        self._start_time = datetime.now()

        self.logger.info("=" * 60)
        self.logger.info("Metadata Renamer - 処理開始")
        self.logger.info("=" * 60)
        self.logger.info(f"開始時刻: {self._start_time.strftime('%Y-%m-%d %H:%M:%S')}")

        if source_dirs:
            self.logger.info("画像ディレクトリ:")
            for source_dir in source_dirs:
                self.logger.info(f"  - {source_dir}")

        if output_dir:
            self.logger.info(f"出力先: {output_dir}")

        self.logger.info("")

    def log_reading_start(self, files_count: int):
        """メタデータ読み取り開始のログ"""
        self.logger.info(f"メタデータ読み取り開始: {files_count}個の画像")

    def log_reading_progress(self, total_files: int, files_processed: int, current_file: Optional[Path] = None):
        """メタデータ読み取り時の進捗表示"""
        if self.config.verbose and current_file:
            self.logger.info(f"読み取り中: {current_file.name}")

        if total_files > 0:
            progress = (files_processed / total_files) * 100
            self.logger.info(f"読み取り進捗: {files_processed}/{total_files} ({progress:.1f}%)")

    def log_reading_complete(self, images_loaded: int, processing_time: float):
        """メタデータ読み取り完了のログ"""
        self.logger.info(f"メタデータ読み取り完了: {images_loaded}個の画像を読み込み")
        self.logger.info(f"処理時間: {processing_time:.2f}秒")
        self.logger.info("")

    def log_matching_complete(self, statistics: dict, processing_time: float):
        """マッチング処理完了のログ"""
        self.logger.info(
            f"マッチング処理完了: 完全一致 {statistics['exact_matches']}個, "
            f"部分一致 {statistics['partial_matches']}個, "
            f"未マッチ {statistics['unmatched']}個"
        )
        self.logger.info(f"処理時間: {processing_time:.2f}秒")
        self.logger.info("")

    def log_export_start(self, files_count: int):
        """書き出し開始のログ"""
        self.logger.info(f"書き出し開始: {files_count}個のファイルを書き出し予定")

    def log_export_progress(self, total_files: int, files_processed: int, current_file: Optional[Path] = None):
        """書き出し時の進捗表示"""
        if self.config.verbose and current_file:
            self.logger.info(f"書き出し中: {current_file.name}")

        if total_files > 0:
            progress = (files_processed / total_files) * 100
            self.logger.info(f"書き出し進捗: {files_processed}/{total_files} ({progress:.1f}%)")

    def log_export_complete(self, files_written: int, outputs: List[Path], processing_time: float):
        """書き出し完了のログ"""
        self.logger.info(f"書き出し完了: {files_written}個のファイル")
        for output in outputs:
            self.logger.info(f"  - {output}")
        self.logger.info(f"処理時間: {processing_time:.2f}秒")
        self.logger.info("")

    def log_processing_complete(self, stats: ProcessingStats):
        """処理完了時のサマリー表示"""
        end_time = datetime.now()
        total_time = (end_time - self._start_time).total_seconds() if self._start_time else 0

        self.logger.info("=" * 60)
        self.logger.info("処理完了サマリー")
        self.logger.info("=" * 60)
        self.logger.info(f"終了時刻: {end_time.strftime('%Y-%m-%d %H:%M:%S')}")
        self.logger.info(f"総処理時間: {total_time:.2f}秒")
        self.logger.info("")
        self.logger.info("処理結果:")
        self.logger.info(f"  - 画像発見数: {stats.images_found}")
        self.logger.info(f"  - 読み込み数: {stats.images_loaded}")
        self.logger.info(f"  - 完全一致: {stats.exact_matches}")
        self.logger.info(f"  - 部分一致: {stats.partial_matches}")
        self.logger.info(f"  - 未マッチ: {stats.unmatched}")
        self.logger.info(f"  - 書き出し: {stats.files_exported}")

        if stats.errors:
            self.logger.info("")
            self.logger.info(f"エラー詳細 ({len(stats.errors)}件):")
            for file_path, error_msg in stats.errors:
                self.logger.error(f"  - {file_path}: {error_msg}")

        self.logger.info("=" * 60)

    def log_error(self, file_path: Path, error_message: str, exception: Optional[Exception] = None):
        """エラーログの詳細記録"""
        error_msg = f"エラー - {file_path}: {error_message}"

        if exception:
            error_msg += f" ({type(exception).__name__}: {str(exception)})"

        self.logger.error(error_msg)

        # スタックトレースはファイルログのみ
        if exception and self.config.log_file:
            self.logger.debug("スタックトレース:", exc_info=exception)

    def log_warning(self, message: str):
        """警告メッセージのログ"""
        self.logger.warning(f"警告: {message}")

    def log_info(self, message: str):
        """情報メッセージのログ"""
        self.logger.info(message)

    def log_debug(self, message: str):
        """デバッグメッセージのログ"""
        self.logger.debug(message)


def create_default_logger(verbose: bool = False, log_file: Optional[Path] = None) -> ProgressLogger:
    """デフォルトのロガーを作成"""
    config = LogConfig(
        console_level=logging.DEBUG if verbose else logging.INFO,
        file_level=logging.DEBUG,
        log_file=log_file,
        verbose=verbose
    )
    return ProgressLogger(config)


def get_default_log_file() -> Path:
    """デフォルトのログファイルパスを取得"""
    log_dir = Path.home() / '.metadata_renamer' / 'logs'
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return log_dir / f'metadata_renamer_{timestamp}.log'
