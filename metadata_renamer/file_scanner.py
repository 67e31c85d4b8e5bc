"""
ファイルスキャナー

ディレクトリをスキャンして画像ファイルを検索する機能を提供します。
"""

from pathlib import Path
from typing import List, Set

from .path_validator import PathValidator


class FileScanner:
    """ディレクトリをスキャンして画像ファイルを検索するクラス"""

    # 画像ファイル拡張子（小文字で比較）
    IMAGE_EXTENSIONS: Set[str] = {
        '.png',
        '.jpg', '.jpeg',
        '.webp',
        '.gif',
        '.bmp',
        '.tif', '.tiff',
        '.heic', '.heif',
        '.avif',
    }

    PNG_EXTENSIONS: Set[str] = {'.png'}

    def scan_image_files(self, directory: Path, recursive: bool = True) -> List[Path]:
        """
        ディレクトリをスキャンして画像ファイルを検索

        Args:
            directory: スキャンするディレクトリ
            recursive: サブディレクトリも検索する場合True

        Returns:
            見つかった画像ファイルのパスのリスト（パス順）

        Raises:
            ValidationError: ディレクトリが無効な場合
        """
        # ディレクトリの検証
        PathValidator.validate_directory(directory)

        candidates = directory.rglob('*') if recursive else directory.iterdir()
        image_files = [
            file_path for file_path in candidates
            if file_path.is_file() and self.is_image_file(file_path)
        ]

        return sorted(image_files)

    def is_image_file(self, file_path: Path) -> bool:
        """
        ファイルが画像ファイルかどうかを判定

        Args:
            file_path: ファイルパス

        Returns:
            画像ファイルの場合True
        """
        return file_path.suffix.lower() in self.IMAGE_EXTENSIONS

    def is_png_file(self, file_path: Path) -> bool:
        """ファイルがPNGファイルかどうかを拡張子で判定"""
        return file_path.suffix.lower() in self.PNG_EXTENSIONS
