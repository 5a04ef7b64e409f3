"""Internationalization module for the clipingest CLI.

Provides locale detection and help message localization.
Help messages are displayed in Japanese for Japanese locales,
and in English for all other locales.
"""

import os
from typing import Literal

Locale = Literal["ja", "en"]


def get_locale() -> Locale:
    """Detect locale from environment variables.

    Priority: LC_ALL > LANG
    Returns "ja" for Japanese locales (ja_JP, ja), "en" otherwise.
    """
    locale_str = os.environ.get("LC_ALL") or os.environ.get("LANG") or ""
    if locale_str.lower().startswith("ja"):
        return "ja"
    return "en"


def get_help(key: str) -> str:
    """Get localized help message for the given key.

    Raises:
        KeyError: If the key is not found in HELP_MESSAGES
    """
    return HELP_MESSAGES[key][get_locale()]


HELP_MESSAGES: dict[str, dict[Locale, str]] = {
    # Main CLI
    "cli.description": {
        "ja": "clipingest - カードのクリップをテイクとして取り込むツール",
        "en": "clipingest - import clips from a card as scene/take records",
    },
    "cli.verbose": {
        "ja": "詳細ログを表示",
        "en": "Show debug logging",
    },
    # import command
    "import.description": {
        "ja": "ソースディレクトリのクリップを取り込み、完了まで進捗を表示\n\n"
        "PATH を省略すると前回開いたパスを使用します。",
        "en": "Import clips from a source directory and follow the job to completion\n\n"
        "PATH defaults to the last path opened.",
    },
    "import.subdir": {
        "ja": "取り込み先のサブディレクトリ",
        "en": "Destination subdirectory",
    },
    "import.select": {
        "ja": "セレクトとしてマークするクリップ名（複数指定可、先に取り込まれます）",
        "en": "Mark clip as a select (repeatable; selects are imported first)",
    },
    "import.scene": {
        "ja": "全クリップに割り当てるシーン",
        "en": "Scene to assign to every clip",
    },
    "import.start_num": {
        "ja": "最初のクリップのテイク番号（以降は連番）",
        "en": "Take number of the first clip; later clips are numbered consecutively",
    },
    "import.all": {
        "ja": "取り込み済みのクリップも再度取り込む",
        "en": "Also re-import clips that already have a take",
    },
    "import.dry_run": {
        "ja": "取り込みを開始せずに送信内容を表示",
        "en": "Show the batch without starting the import",
    },
    "import.json": {
        "ja": "JSON 形式で出力",
        "en": "Output in JSON format",
    },
    # status command
    "status.description": {
        "ja": "取り込みジョブの状態を表示",
        "en": "Show the state of the import job",
    },
    "status.json": {
        "ja": "JSON 形式で出力",
        "en": "Output in JSON format",
    },
    # takes commands
    "takes.description": {
        "ja": "記録済みテイクの一覧・編集・削除",
        "en": "List, edit and delete recorded takes",
    },
    "takes.list": {
        "ja": "シーンごとにテイクを一覧表示",
        "en": "List takes grouped by scene",
    },
    "takes.show": {
        "ja": "テイクの詳細を表示",
        "en": "Show a single take",
    },
    "takes.edit": {
        "ja": "テイクを更新",
        "en": "Update a take",
    },
    "takes.delete": {
        "ja": "テイクを削除",
        "en": "Delete a take",
    },
    "takes.json": {
        "ja": "JSON 形式で出力",
        "en": "Output in JSON format",
    },
    # config command
    "config.description": {
        "ja": "設定を表示",
        "en": "Show configuration",
    },
    "config.json": {
        "ja": "JSON 形式で出力",
        "en": "Output in JSON format",
    },
    "config.set": {
        "ja": "設定値を変更（例: server.base_url, import.default_scene）",
        "en": "Set a configuration value (e.g. server.base_url, import.default_scene)",
    },
}
