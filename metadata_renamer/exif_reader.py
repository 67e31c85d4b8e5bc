"""
Exif情報読み取りモジュール

画像ファイルからEXIF/XMP/IPTCなどの埋め込みメタデータを読み取る機能を提供します。
ExifToolを外部コマンドとして実行してメタデータを取得します。
読み取り結果はキャッシュされ、同じファイルの重複読み取りを避けます。
"""

import json
import logging
import shutil
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ExifReadError


class ExifReader:
    """ExifTool を使用したメタデータ読み取りクラス（キャッシュ機能付き）"""

    # 読み取り対象のタググループ（ExifTool形式）
    TAG_GROUPS: List[str] = [
        'EXIF:All',
        'XMP:All',
        'IPTC:All',
        'ICC_Profile:All',
        'JFIF:All',
    ]

    def __init__(self, exiftool_path: Optional[Path] = None):
        """
        ExifReaderを初期化

        Args:
            exiftool_path: ExifToolの実行ファイル（Noneの場合は自動検索）
        """
        self.cache: Dict[Path, Dict[str, Any]] = {}
        self.logger = logging.getLogger(__name__)
        self.exiftool_path: Optional[Path] = exiftool_path

        # ExifToolの初期化チェック
        self._check_exiftool_availability()

    def _check_exiftool_availability(self) -> None:
        """ExifToolが利用可能かチェックし、パスを設定"""
        try:
            if self.exiftool_path is None:
                self.exiftool_path = self._find_exiftool()
            # ExifToolのバージョンを確認
            result = subprocess.run(
                [str(self.exiftool_path), '-ver'],
                capture_output=True,
                text=True,
                timeout=10
            )
            if result.returncode == 0:
                version = result.stdout.strip()
                self.logger.info(f"ExifTool が見つかりました: {self.exiftool_path} (バージョン: {version})")
            else:
                raise ExifReadError("ExifTool の実行に失敗しました")

        except Exception as e:
            self.exiftool_path = None
            error_msg = (
                "ExifTool が見つかりません。以下の方法でインストールしてください:\n"
                "Windows: https://exiftool.org/ からダウンロードしてPATHに追加\n"
                "macOS: brew install exiftool\n"
                "Linux: sudo apt-get install libimage-exiftool-perl (Ubuntu/Debian)"
            )
            self.logger.debug(error_msg)
            raise ExifReadError(error_msg) from e

    def _find_exiftool(self) -> Path:
        """ExifToolの実行可能ファイルを検索"""
        # システムPATHから検索
        exiftool_name = 'exiftool.exe' if sys.platform == 'win32' else 'exiftool'
        exiftool_path = shutil.which(exiftool_name)

        if exiftool_path:
            return Path(exiftool_path)

        # 一般的なインストール場所を検索
        if sys.platform == 'win32':
            common_paths = [
                Path('C:/Windows/exiftool.exe'),
                Path('C:/Program Files/exiftool/exiftool.exe'),
                Path('C:/Program Files (x86)/exiftool/exiftool.exe'),
            ]
        else:
            common_paths = [
                Path('/usr/local/bin/exiftool'),
                Path('/usr/bin/exiftool'),
                Path('/opt/homebrew/bin/exiftool'),  # Apple Silicon Mac
            ]

        for path in common_paths:
            if path.exists() and path.is_file():
                return path

        raise FileNotFoundError("ExifTool が見つかりません")

    def read_metadata(self, file_path: Path) -> Dict[str, Any]:
        """
        ファイルからメタデータを読み取る（キャッシュ付き）

        日時を表すタグの値は datetime に変換して返します。

        Args:
            file_path: 読み取り対象のファイルパス

        Returns:
            タグ名をキーとするメタデータの辞書（取得できない場合は空）

        Raises:
            ExifReadError: ExifToolの実行でエラーが発生した場合
        """
        # キャッシュから確認
        if file_path in self.cache:
            self.logger.debug(f"キャッシュからメタデータを取得: {file_path}")
            return self.cache[file_path]

        if not file_path.exists():
            self.logger.warning(f"ファイルが存在しません: {file_path}")
            self.cache[file_path] = {}
            return {}

        try:
            raw_tags = self._run_exiftool(file_path, self.TAG_GROUPS)
        except ExifReadError:
            # エラーの場合もキャッシュする（再試行を避ける）
            self.cache[file_path] = {}
            raise

        raw_tags.pop('SourceFile', None)
        tags = {key: self._revive_value(key, value) for key, value in raw_tags.items()}

        self.cache[file_path] = tags
        self.logger.debug(f"メタデータを取得: {file_path} ({len(tags)}タグ)")
        return tags

    def _revive_value(self, tag_name: str, value: Any) -> Any:
        """日時タグの文字列値を datetime に変換（解析できない場合はそのまま）"""
        if isinstance(value, str) and 'Date' in tag_name:
            parsed = self._parse_exif_datetime(value)
            if parsed:
                return parsed
        return value

    def _run_exiftool(self, file_path: Path, tags: List[str]) -> Dict[str, Any]:
        """
        ExifToolを実行してメタデータを取得

        Args:
            file_path: 読み取り対象のファイルパス
            tags: 取得するタグ（グループ）のリスト

        Returns:
            メタデータの辞書

        Raises:
            ExifReadError: ExifTool実行でエラーが発生した場合
        """
        if not self.exiftool_path:
            raise ExifReadError("ExifTool が初期化されていません")

        # JSON出力、XMP構造体はそのまま辞書として出力
        cmd = [str(self.exiftool_path), '-j', '-struct', '-charset', 'utf8']
        for tag in tags:
            cmd.append('-' + tag)
        cmd.append(str(file_path))

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=30,  # 30秒でタイムアウト
                encoding='utf-8'
            )
        except subprocess.TimeoutExpired:
            raise ExifReadError(f"ExifTool実行がタイムアウトしました: {file_path}")
        except OSError as e:
            raise ExifReadError(f"ExifTool実行中に予期しないエラー: {str(e)}") from e

        if result.returncode != 0:
            error_msg = f"ExifTool実行エラー (終了コード: {result.returncode}): {result.stderr}"
            raise ExifReadError(error_msg)

        # JSON出力を解析
        try:
            json_data = json.loads(result.stdout) if result.stdout.strip() else []
        except json.JSONDecodeError as e:
            raise ExifReadError(f"ExifTool JSON出力の解析エラー: {str(e)}") from e

        if json_data:
            return dict(json_data[0])  # 最初のファイルの情報を返す
        return {}

    def _parse_exif_datetime(self, datetime_str: str) -> Optional[datetime]:
        """
        Exif日時文字列をdatetimeオブジェクトに変換

        Args:
            datetime_str: Exif日時文字列（例: "2023:12:25 14:30:45" または "2023-12-25T14:30:45"）

        Returns:
            datetimeオブジェクト（解析できない場合はNone）
        """
        if not datetime_str or datetime_str.strip() == '':
            return None

        # ExifToolの出力形式に対応した複数のフォーマットを試行
        formats = [
            '%Y:%m:%d %H:%M:%S',      # 標準Exifフォーマット
            '%Y:%m:%d %H:%M:%S%z',    # 標準Exifフォーマット（タイムゾーン付き）
            '%Y:%m:%d %H:%M:%S.%f',   # サブ秒付き
            '%Y-%m-%d %H:%M:%S',      # ISO形式（スペース区切り）
            '%Y-%m-%dT%H:%M:%S',      # ISO形式（T区切り）
            '%Y-%m-%dT%H:%M:%S%z',    # ISO形式（タイムゾーン付き）
            '%Y:%m:%d',               # 日付のみ
        ]

        value = datetime_str.strip()
        for fmt in formats:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue

        self.logger.debug(f"日時文字列の解析に失敗: '{datetime_str}'")
        return None

    def clear_cache(self) -> None:
        """キャッシュをクリア"""
        self.cache.clear()
        self.logger.debug("Exifキャッシュをクリアしました")

    def get_cache_size(self) -> int:
        """キャッシュサイズを取得"""
        return len(self.cache)

    def is_cached(self, file_path: Path) -> bool:
        """ファイルがキャッシュされているかチェック"""
        return file_path in self.cache
