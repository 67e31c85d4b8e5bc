"""
コマンドラインインターフェース

Metadata Renamerのメインエントリーポイントです。
argparseのサブコマンド機能を使用して、match、export、copy、metadata、rulesコマンドを提供します。
"""

import argparse
import sys
from pathlib import Path

from .exceptions import ProcessingError, ValidationError
from .models import (
    DEFAULT_LIMITS, DEFAULT_MIN_MATCH_RATIO, DEFAULT_TOKEN_SEPARATOR, PartialMatchSettings
)
from .path_validator import PathValidator
from .rename_manager import RenameManager


def _add_matching_arguments(parser: argparse.ArgumentParser) -> None:
    """画像ディレクトリと規則を受け取るコマンド共通の引数を追加"""
    parser.add_argument(
        'images',
        type=str,
        help='画像ファイルのディレクトリパス'
    )
    parser.add_argument(
        '--rules', '-r',
        type=str,
        required=True,
        help='規則ファイルのパス（#ファイル名 / キーワード 形式）'
    )
    parser.add_argument(
        '--partial', '-p',
        action='store_true',
        help='すべての規則で部分マッチングを有効にする'
    )
    parser.add_argument(
        '--min-ratio',
        type=float,
        default=DEFAULT_MIN_MATCH_RATIO,
        help=f'部分マッチングの最小一致率 0.10〜0.99（デフォルト: {DEFAULT_MIN_MATCH_RATIO}）'
    )
    parser.add_argument(
        '--separator',
        type=str,
        default=DEFAULT_TOKEN_SEPARATOR,
        help=f'キーワードのトークン区切り文字（デフォルト: "{DEFAULT_TOKEN_SEPARATOR}"）'
    )
    parser.add_argument(
        '--no-recursive', '-nr',
        action='store_true',
        help='サブディレクトリを検索しない（デフォルトは再帰的に検索）'
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=1,
        help='メタデータ読み取りの並列数（デフォルト: 1）'
    )
    parser.add_argument(
        '--no-exiftool',
        action='store_true',
        help='ExifToolを使用せず、PNGテキストチャンクのみを読み取る'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='詳細ログを表示'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    コマンドライン引数パーサーを作成

    Returns:
        設定済みのArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='metadata-renamer',
        description='画像のメタデータに含まれるキーワードで画像ファイルをリネームするツール',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  # 予定されるファイル名を確認
  metadata-renamer match /path/to/images --rules rules.txt

  # ZIPアーカイブに書き出し
  metadata-renamer export /path/to/images --rules rules.txt --output /path/to/output

  # ディレクトリにコピー
  metadata-renamer copy /path/to/images --rules rules.txt --output /path/to/renamed

  # 画像のメタデータを表示
  metadata-renamer metadata /path/to/image.png

  # 規則ファイルを正規化
  metadata-renamer rules rules.txt --output /path/to/output

詳細については各サブコマンドのヘルプを参照してください:
  metadata-renamer <command> --help
        """
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='利用可能なコマンド',
        metavar='<command>'
    )

    # matchコマンド（エイリアス: m）
    match_parser = subparsers.add_parser(
        'match',
        aliases=['m'],
        help='規則を適用して予定されるファイル名を表示',
        description='画像のメタデータに規則を適用し、マッチング結果と新しいファイル名を表示します。ファイルは変更しません。',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  # 基本的な使用方法
  metadata-renamer match /path/to/images --rules rules.txt

  # 部分マッチングを有効にする（一致率80%以上）
  metadata-renamer match /path/to/images --rules rules.txt --partial --min-ratio 0.8

  # サブディレクトリを検索しない
  metadata-renamer match /path/to/images --rules rules.txt --no-recursive
        """
    )
    _add_matching_arguments(match_parser)

    # exportコマンド（エイリアス: e）
    export_parser = subparsers.add_parser(
        'export',
        aliases=['e'],
        help='マッチした画像をZIPアーカイブに書き出し',
        description='マッチした画像を新しいファイル名でZIPアーカイブに書き出します。一定数ごとに別のアーカイブに分割します。',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  # 基本的な使用方法
  metadata-renamer export /path/to/images --rules rules.txt --output /path/to/output

  # 1アーカイブあたり50ファイル
  metadata-renamer export /path/to/images --rules rules.txt --output /path/to/output --batch-size 50
        """
    )
    _add_matching_arguments(export_parser)
    export_parser.add_argument(
        '--output', '-o',
        type=str,
        required=True,
        help='アーカイブの出力先ディレクトリ'
    )
    export_parser.add_argument(
        '--batch-size',
        type=int,
        default=DEFAULT_LIMITS.batch_size,
        help=f'1アーカイブあたりのファイル数（デフォルト: {DEFAULT_LIMITS.batch_size}）'
    )

    # copyコマンド（エイリアス: c）
    copy_parser = subparsers.add_parser(
        'copy',
        aliases=['c'],
        help='マッチした画像を新しいファイル名でコピー',
        description='マッチした画像を新しいファイル名で指定ディレクトリにコピーします。既存のファイルはスキップします。',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  # 基本的な使用方法
  metadata-renamer copy /path/to/images --rules rules.txt --output /path/to/renamed
        """
    )
    _add_matching_arguments(copy_parser)
    copy_parser.add_argument(
        '--output', '-o',
        type=str,
        required=True,
        help='コピー先ディレクトリ'
    )

    # metadataコマンド（エイリアス: md）
    metadata_parser = subparsers.add_parser(
        'metadata',
        aliases=['md'],
        help='画像のメタデータを表示',
        description='1つの画像ファイルから読み取ったメタデータ（マッチング対象のフィールド）を表示します。',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  # 基本的な使用方法
  metadata-renamer metadata /path/to/image.png

  # 長い値も省略せずに表示
  metadata-renamer metadata /path/to/image.png --verbose
        """
    )
    metadata_parser.add_argument(
        'file',
        type=str,
        help='画像ファイルのパス'
    )
    metadata_parser.add_argument(
        '--no-exiftool',
        action='store_true',
        help='ExifToolを使用せず、PNGテキストチャンクのみを読み取る'
    )
    metadata_parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='詳細情報を表示'
    )

    # rulesコマンド（エイリアス: r）
    rules_parser = subparsers.add_parser(
        'rules',
        aliases=['r'],
        help='規則ファイルを正規化',
        description='規則ファイルを読み込み、ファイル名の正規化と重複キーワードの除去を行って表示します。',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  # 規則の一覧を表示
  metadata-renamer rules rules.txt

  # 正規化した規則を書き出し（ディレクトリ指定時は keyword_rules_YYYY-MM-DD.txt）
  metadata-renamer rules rules.txt --output /path/to/output
        """
    )
    rules_parser.add_argument(
        'file',
        type=str,
        help='規則ファイルのパス'
    )
    rules_parser.add_argument(
        '--output', '-o',
        type=str,
        help='正規化した規則の書き出し先（ファイルまたはディレクトリ）'
    )
    rules_parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='キーワードを省略せずに表示'
    )

    return parser


def _build_settings(args) -> PartialMatchSettings:
    """コマンドライン引数から部分マッチング設定を作成"""
    return PartialMatchSettings(
        global_enabled=args.partial,
        min_match_ratio=args.min_ratio,
        token_separator=args.separator
    )


def _validate_matching_args(args) -> None:
    """共通引数の検証"""
    PathValidator.validate_directory(Path(args.images))
    PathValidator.validate_file(Path(args.rules))

    if args.workers < 1:
        raise ValidationError(f"並列数は1以上を指定してください: {args.workers}")


def handle_match_command(args) -> int:
    """
    matchコマンドを処理

    Args:
        args: 解析されたコマンドライン引数

    Returns:
        終了コード（0: 成功、1: エラー）
    """
    try:
        _validate_matching_args(args)
        settings = _build_settings(args)

        rename_manager = RenameManager(use_exiftool=not args.no_exiftool)
        rename_manager.preview(
            image_dir=Path(args.images),
            rules_file=Path(args.rules),
            recursive=not args.no_recursive,
            settings=settings,
            verbose=args.verbose,
            max_workers=args.workers
        )

        return 0

    except ValidationError as e:
        print(f"❌ 入力エラー: {e}", file=sys.stderr)
        return 1
    except ProcessingError as e:
        print(f"❌ 処理エラー: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ 予期しないエラー: {e}", file=sys.stderr)
        return 1


def handle_export_command(args) -> int:
    """
    exportコマンドを処理

    Args:
        args: 解析されたコマンドライン引数

    Returns:
        終了コード（0: 成功、1: エラー）
    """
    try:
        _validate_matching_args(args)
        if args.batch_size < 1:
            raise ValidationError(f"バッチサイズは1以上を指定してください: {args.batch_size}")
        PathValidator.validate_output_directory(Path(args.output))
        settings = _build_settings(args)

        rename_manager = RenameManager(use_exiftool=not args.no_exiftool)
        rename_manager.export_archives(
            image_dir=Path(args.images),
            rules_file=Path(args.rules),
            output_dir=Path(args.output),
            recursive=not args.no_recursive,
            settings=settings,
            verbose=args.verbose,
            batch_size=args.batch_size,
            max_workers=args.workers
        )

        return 0

    except ValidationError as e:
        print(f"❌ 入力エラー: {e}", file=sys.stderr)
        return 1
    except ProcessingError as e:
        print(f"❌ 処理エラー: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ 予期しないエラー: {e}", file=sys.stderr)
        return 1


def handle_copy_command(args) -> int:
    """
    copyコマンドを処理

    Args:
        args: 解析されたコマンドライン引数

    Returns:
        終了コード（0: 成功、1: 失敗したファイルがある場合またはエラー）
    """
    try:
        _validate_matching_args(args)
        PathValidator.validate_output_directory(Path(args.output))
        settings = _build_settings(args)

        rename_manager = RenameManager(use_exiftool=not args.no_exiftool)
        result = rename_manager.copy_renamed(
            image_dir=Path(args.images),
            rules_file=Path(args.rules),
            target_dir=Path(args.output),
            recursive=not args.no_recursive,
            settings=settings,
            verbose=args.verbose,
            max_workers=args.workers
        )

        return 1 if result.failed else 0

    except ValidationError as e:
        print(f"❌ 入力エラー: {e}", file=sys.stderr)
        return 1
    except ProcessingError as e:
        print(f"❌ 処理エラー: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ 予期しないエラー: {e}", file=sys.stderr)
        return 1


def handle_metadata_command(args) -> int:
    """
    metadataコマンドを処理

    Args:
        args: 解析されたコマンドライン引数

    Returns:
        終了コード（0: 成功、1: エラー）
    """
    try:
        file_path = Path(args.file)
        PathValidator.validate_file(file_path)

        rename_manager = RenameManager(use_exiftool=not args.no_exiftool)
        rename_manager.show_metadata(file_path, verbose=args.verbose)

        return 0

    except ValidationError as e:
        print(f"❌ 入力エラー: {e}", file=sys.stderr)
        return 1
    except ProcessingError as e:
        print(f"❌ 処理エラー: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ 予期しないエラー: {e}", file=sys.stderr)
        return 1


def handle_rules_command(args) -> int:
    """
    rulesコマンドを処理

    Args:
        args: 解析されたコマンドライン引数

    Returns:
        終了コード（0: 成功、1: エラー）
    """
    try:
        rules_path = Path(args.file)
        PathValidator.validate_file(rules_path)

        output = Path(args.output) if args.output else None
        if output is not None:
            PathValidator.validate_output_directory(output)

        rename_manager = RenameManager(use_exiftool=False)
        rename_manager.normalize_rules(rules_path, output=output, verbose=args.verbose)

        return 0

    except ValidationError as e:
        print(f"❌ 入力エラー: {e}", file=sys.stderr)
        return 1
    except ProcessingError as e:
        print(f"❌ 処理エラー: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ 予期しないエラー: {e}", file=sys.stderr)
        return 1


def main() -> int:
    """
    メインエントリーポイント

    Returns:
        終了コード（0: 成功、1: エラー）
    """
    parser = create_parser()

    # 引数が指定されていない場合はヘルプを表示
    if len(sys.argv) == 1:
        parser.print_help()
        return 0

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    if args.command in ['match', 'm']:
        return handle_match_command(args)
    elif args.command in ['export', 'e']:
        return handle_export_command(args)
    elif args.command in ['copy', 'c']:
        return handle_copy_command(args)
    elif args.command in ['metadata', 'md']:
        return handle_metadata_command(args)
    elif args.command in ['rules', 'r']:
        return handle_rules_command(args)
    else:
        print(f"❌ 不明なコマンド: {args.command}", file=sys.stderr)
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
