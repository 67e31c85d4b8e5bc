#!/usr/bin/env python3
"""
Metadata Renamer - 基本的な使用例

このスクリプトは、Metadata Renamerの基本的な使用方法を示します。
プログラムから直接ツールの機能を呼び出す例を提供します。
"""

from pathlib import Path

from metadata_renamer.exceptions import ArchiveError
from metadata_renamer.exporter import Exporter
from metadata_renamer.file_scanner import FileScanner
from metadata_renamer.image_collection import ImageCollection
from metadata_renamer.models import FilterMode, PartialMatchSettings
from metadata_renamer.rename_manager import RenameManager
from metadata_renamer.rule_manager import RuleManager


def example_basic_workflow():
    """基本的なワークフローの例"""
    print("=" * 60)
    print("Metadata Renamer - 基本的な使用例")
    print("=" * 60)

    # 例用のパス（実際の使用時は適切なパスに変更してください）
    image_directory = Path("~/Pictures/Generated").expanduser()
    rules_file = Path("~/Pictures/keyword_rules.txt").expanduser()
    output_directory = Path("~/Pictures/Renamed").expanduser()

    print(f"画像ディレクトリ: {image_directory}")
    print(f"規則ファイル: {rules_file}")
    print()

    if not image_directory.exists():
        print(f"⚠️  画像ディレクトリが存在しません: {image_directory}")
        print("実際のディレクトリパスに変更してください。")
        return

    if not rules_file.exists():
        print(f"⚠️  規則ファイルが存在しません: {rules_file}")
        print("実際のファイルパスに変更してください。")
        return

    try:
        rename_manager = RenameManager()
        settings = PartialMatchSettings()

        # ステップ1: マッチング結果の確認
        print("ステップ1: マッチング結果の確認")
        print("-" * 40)

        rename_manager.preview(
            image_dir=image_directory,
            rules_file=rules_file,
            recursive=True,
            settings=settings,
            verbose=False
        )

        print()

        # ステップ2: ZIPアーカイブに書き出し
        print("ステップ2: ZIPアーカイブに書き出し")
        print("-" * 40)

        result = rename_manager.export_archives(
            image_dir=image_directory,
            rules_file=rules_file,
            output_dir=output_directory,
            recursive=True,
            settings=settings,
            verbose=False
        )

        print()
        print(f"✅ {result.batches}個のアーカイブを作成しました！")

    except Exception as e:
        print(f"❌ エラーが発生しました: {e}")
        return


def example_partial_matching():
    """規則をプログラムで作成し、部分マッチングを使う例"""
    print("=" * 60)
    print("Metadata Renamer - 部分マッチングの例")
    print("=" * 60)

    image_directory = Path("~/Pictures/Generated").expanduser()
    output_directory = Path("~/Pictures/Renamed").expanduser()

    if not image_directory.exists():
        print(f"⚠️  画像ディレクトリが存在しません: {image_directory}")
        return

    # 規則を作成（上にある規則ほど優先）
    rule_manager = RuleManager()
    for keyword, file_name in [
        ("1girl, solo, beach, sunset", "beach_sunset"),
        ("1girl, solo, forest", "forest"),
        ("landscape, mountain", "mountain"),
    ]:
        result = rule_manager.add_rule(keyword, file_name)
        if not result.accepted:
            print(f"⚠️  規則を追加できません: {result.error}")

    # トークンの80%以上が含まれていれば部分一致とする
    settings = PartialMatchSettings(global_enabled=True, min_match_ratio=0.8)

    try:
        collection = ImageCollection()
        image_files = FileScanner().scan_image_files(image_directory)
        ingest = collection.add_files(image_files)
        print(f"取り込み: {len(ingest.added)}枚（スキップ: {len(ingest.skipped)}枚）")

        images = collection.apply_rules(rule_manager.rules, settings)

        for image in images:
            if not image.is_matched:
                continue
            label = "部分一致" if image.is_partial_match else "完全一致"
            print(f"  {image.original_name} -> {image.new_file_name} ({label} {image.match_score:.0%})")

            # 候補が複数ある場合は2番目の候補を選択する例
            if image.candidate_matches:
                updated = collection.select_match(image.id, image.candidate_matches[1])
                print(f"    候補を変更: {updated.new_file_name}")

        unmatched = collection.filter_images(FilterMode.UNMATCHED)
        print(f"未マッチ: {len(unmatched)}枚")

        result = Exporter().export_zip_batches(collection.matched_images(), output_directory)
        for archive in result.archives:
            print(f"  - {archive}")

        print()
        print("✅ 部分マッチングの処理が完了しました！")

    except ArchiveError as e:
        print(f"❌ アーカイブの作成に失敗しました: {e}")
    except Exception as e:
        print(f"❌ エラーが発生しました: {e}")


def main():
    """メイン関数 - 使用例を選択して実行"""
    print("Metadata Renamer - 使用例スクリプト")
    print()
    print("実行する例を選択してください:")
    print("1. 基本的なワークフロー")
    print("2. 部分マッチング")
    print("0. 終了")
    print()

    while True:
        try:
            choice = input("選択 (0-2): ").strip()

            if choice == '0':
                print("終了します。")
                break
            elif choice == '1':
                example_basic_workflow()
            elif choice == '2':
                example_partial_matching()
            else:
                print("無効な選択です。0-2の数字を入力してください。")
                continue

            print()
            if input("他の例を実行しますか？ (y/N): ").lower() != 'y':
                break
            print()

        except KeyboardInterrupt:
            print("\n\n処理が中断されました。")
            break


if __name__ == '__main__':
    main()
