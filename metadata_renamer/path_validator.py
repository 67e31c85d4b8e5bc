"""
パス検証ユーティリティ

入力ファイル・ディレクトリパスの検証とディスク容量の確認を提供します。
"""

import os
import shutil
from pathlib import Path

from .exceptions import ValidationError


class PathValidator:
    """パス検証を行うユーティリティクラス"""

    @staticmethod
    def validate_directory(path: Path) -> None:
        """
        ディレクトリの存在とアクセス権を検証

        Args:
            path: 検証するディレクトリパス

        Raises:
            ValidationError: ディレクトリが存在しない、アクセス不可能、
                           またはディレクトリではない場合
        """
        if not path.exists():
            raise ValidationError(f"ディレクトリが存在しません: {path}")

        if not path.is_dir():
            raise ValidationError(f"指定されたパスはディレクトリではありません: {path}")

        # 読み取り権限の確認
        if not os.access(path, os.R_OK):
            raise ValidationError(f"ディレクトリに読み取り権限がありません: {path}")

    @staticmethod
    def validate_file(path: Path) -> None:
        """
        ファイルの存在と読み取り権限を検証

        Args:
            path: 検証するファイルパス

        Raises:
            ValidationError: ファイルが存在しない、ファイルではない、
                           または読み取り権限がない場合
        """
        if not path.exists():
            raise ValidationError(f"ファイルが存在しません: {path}")

        if not path.is_file():
            raise ValidationError(f"指定されたパスはファイルではありません: {path}")

        if not os.access(path, os.R_OK):
            raise ValidationError(f"ファイルに読み取り権限がありません: {path}")

    @staticmethod
    def validate_writable_directory(path: Path) -> None:
        """
        書き込み可能なディレクトリかどうかを検証

        Args:
            path: 検証するディレクトリパス

        Raises:
            ValidationError: ディレクトリが存在しない、アクセス不可能、
                           または書き込み権限がない場合
        """
        # まず基本的な検証を実行
        PathValidator.validate_directory(path)

        # 書き込み権限の確認
        if not os.access(path, os.W_OK):
            raise ValidationError(f"ディレクトリに書き込み権限がありません: {path}")

    @staticmethod
    def validate_output_directory(path: Path) -> None:
        """
        出力先ディレクトリを検証

        出力先がまだ存在しない場合は、存在する最も近い親ディレクトリが
        書き込み可能かどうかを検証します。

        Raises:
            ValidationError: 出力先またはその親がディレクトリでない、
                           または書き込み権限がない場合
        """
        existing = path
        while not existing.exists() and existing.parent != existing:
            existing = existing.parent

        PathValidator.validate_writable_directory(existing)

    @staticmethod
    def check_disk_space(path: Path, required_bytes: int) -> bool:
        """
        ディスクの空き容量を確認

        Args:
            path: 確認するディレクトリパス
            required_bytes: 必要な容量（バイト）

        Returns:
            十分な空き容量がある場合True
        """
        try:
            _, _, free = shutil.disk_usage(path)
            return free >= required_bytes
        except (OSError, ValueError):
            # エラーが発生した場合は安全側に倒してFalseを返す
            return False
