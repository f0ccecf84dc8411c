"""アシスタント応答の content ブロックを振り分ける（text → 表示, image_file → 保存）"""

import sys
from dataclasses import dataclass
from pathlib import Path

import requests

from xlchat import config
from xlchat.gateway import GatewayError


@dataclass(frozen=True)
class TextBlock:
    value: str


@dataclass(frozen=True)
class ImageFileBlock:
    file_id: str


@dataclass(frozen=True)
class UnhandledBlock:
    type: str


def parse_block(raw: dict):
    t = raw.get("type")
    if t == "text":
        return TextBlock((raw.get("text") or {}).get("value", ""))
    if t == "image_file":
        return ImageFileBlock((raw.get("image_file") or {}).get("file_id", ""))
    return UnhandledBlock(str(t))


def latest_assistant_message(messages, run_id=None):
    # messages は新しい順。run_id 指定時はその run の応答だけを見る
    for m in messages:
        if m.get("role") != "assistant":
            continue
        if run_id is None or m.get("run_id") == run_id:
            return m
    return None


def select_blocks(messages, scope="latest", run_id=None):
    if scope == "all":
        return [parse_block(c) for m in messages for c in m.get("content", [])]
    m = latest_assistant_message(messages, run_id)
    return [parse_block(c) for c in m.get("content", [])] if m else []


class ContentDispatcher:
    def __init__(self, gateway, output_dir=config.OUTPUT_DIR, scope="latest", delete_remote_images=True):
        self.gateway = gateway
        self.output_dir = Path(output_dir)
        self.scope = scope
        self.delete_remote_images = delete_remote_images

    def dispatch(self, messages, run_id=None) -> list:
        """ブロックを順に処理し、保存できた画像のパスを返す"""
        saved = []
        print("\nAssistant:")
        for block in select_blocks(messages, self.scope, run_id):
            if isinstance(block, TextBlock):
                print(block.value)
            elif isinstance(block, ImageFileBlock):
                path = self.save_image(block.file_id)
                if path:
                    saved.append(path)
            else:
                print(f"Unhandled content type: {block.type}")
        return saved

    def save_image(self, file_id):
        print(f"[Image file received: {file_id}]")
        try:
            data = self.gateway.get_file_content(file_id)
            self.output_dir.mkdir(parents=True, exist_ok=True)
            dst = self.output_dir / f"{file_id}.png"
            dst.write_bytes(data)
            print(f"File saved as '{dst.name}'")
        except (GatewayError, requests.RequestException, OSError) as e:
            print(f"Error retrieving image: {e}", file=sys.stderr)
            return None
        if self.delete_remote_images:
            try:
                self.gateway.delete_file(file_id)
                print("Image file deleted successfully.")
            except GatewayError as e:
                print(f"[warn] 画像ファイルの削除に失敗: {file_id} ({e})", file=sys.stderr)
        return dst
