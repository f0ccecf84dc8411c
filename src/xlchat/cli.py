#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
EXCEL 解析チャット CLI（Azure OpenAI Assistants API）
- 起動時に Font.zip / Excel.zip をアップロードし、code_interpreter 付きアシスタントとスレッドを作成
- "User: " プロンプトで質問 → run を作成して完了までポーリング → テキスト表示 / 画像は output_images/<file_id>.png に保存
- exit（大文字小文字無視）または EOF で終了。終了時・エラー時ともにスレッド/ファイル/アシスタントを必ず削除
- 設定（環境変数 or .env）:
    AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_KEY, DEPLOYMENT_NAME, API_VERSION（省略時 2024-05-01-preview）
- 依存:
    pip install requests chardet python-dotenv
- 使い方例:
    xlchat
    xlchat --font data/Font.zip --excel data/Sales.zip
    xlchat --strategy blocking --max-wait 300
    xlchat --instructions-file prompt_sjis.txt --keep-images
"""

import argparse
import sys
from pathlib import Path

from xlchat import config
from xlchat.dispatcher import ContentDispatcher
from xlchat.gateway import AssistantsGateway, GatewayError
from xlchat.poller import Outcome, RunPoller
from xlchat.session import SetupError, setup, teardown

EXIT_COMMAND = "exit"
PROMPT = "\nUser: "


def is_exit(text: str) -> bool:
    return text.lower() == EXIT_COMMAND


def chat_loop(poller, dispatcher, handle, read=None) -> int:
    """exit まで 1 行ずつ処理する。戻り値は投げたターン数"""
    read = read or input
    turns = 0
    while True:
        try:
            user_input = read(PROMPT)
        except EOFError:
            user_input = EXIT_COMMAND
        if is_exit(user_input):
            print("Ending session...")
            return turns

        turns += 1
        try:
            result = poller.run_turn(handle, user_input)
        except GatewayError as e:
            print(f"[error] {e}", file=sys.stderr)
            continue
        if result.outcome is Outcome.COMPLETED:
            dispatcher.dispatch(result.messages, run_id=result.run.get("id"))


def build_parser():
    ap = argparse.ArgumentParser(
        prog="xlchat",
        description="EXCEL 解析チャット CLI",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    ap.add_argument("--font", type=Path, default=config.FONT_PATH, help="フォント ZIP（既定: input_files/Font.zip）")
    ap.add_argument("--excel", type=Path, default=config.EXCEL_PATH, help="EXCEL ZIP（既定: input_files/Excel.zip）")
    ap.add_argument("--output-dir", type=Path, default=config.OUTPUT_DIR, help="画像の保存先（無ければ作成）")
    ap.add_argument("--strategy", choices=["manual", "blocking"], default="manual",
                    help="manual: 自前ポーリング（途中経過表示）\nblocking: create_and_poll で待つ")
    ap.add_argument("--poll-interval", type=float, help="ポーリング間隔（秒）。既定 manual=5, blocking=1")
    ap.add_argument("--max-wait", type=float, default=config.MAX_WAIT, help="1ターンの待ち上限（秒）。0以下で無制限")
    ap.add_argument("--backoff", type=float, default=1.0, help="manual: 間隔に掛ける倍率（1.0で固定間隔）")
    ap.add_argument("--scope", choices=["latest", "all"], default="latest",
                    help="latest: 最新のアシスタント応答のみ\nall: 一覧の全メッセージ")
    ap.add_argument("--keep-images", action="store_true", help="保存後にリモートの画像ファイルを削除しない")
    ap.add_argument("--instructions-file", type=Path, help="アシスタントの instructions をファイルから読む")
    ap.add_argument("--seed-file", type=Path, help="スレッド最初のメッセージをファイルから読む")
    ap.add_argument("--no-trace", action="store_true", help="ポーリング中のメッセージ一覧を表示しない")
    return ap


def main(argv=None, gateway=None):
    args = build_parser().parse_args(argv)

    try:
        settings = config.load_settings()
        settings = config.with_overrides(settings, args.instructions_file, args.seed_file)
    except (config.ConfigError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    for p in (args.font, args.excel):
        if not p.exists():
            print(f"ERROR: file not found: {p}", file=sys.stderr)
            return 1

    gateway = gateway or AssistantsGateway.from_settings(settings)
    try:
        handle = setup(gateway, settings, args.font, args.excel)
    except SetupError as e:
        print(f"An error occurred: {e}", file=sys.stderr)
        teardown(gateway, e.handle)
        return 1

    poller = RunPoller(
        gateway,
        strategy=args.strategy,
        interval=args.poll_interval,
        max_wait=args.max_wait if args.max_wait > 0 else None,
        backoff=args.backoff,
        trace=not args.no_trace,
    )
    dispatcher = ContentDispatcher(gateway, args.output_dir, scope=args.scope,
                                   delete_remote_images=not args.keep_images)
    print("Chat session started. Type 'exit' to end the session.")
    try:
        chat_loop(poller, dispatcher, handle)
    except KeyboardInterrupt:
        print("\n[warn] 中断されました。後始末をします。", file=sys.stderr)
    finally:
        teardown(gateway, handle)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
