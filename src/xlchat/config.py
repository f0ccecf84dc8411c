"""環境変数・既定値・指示文の読み込み"""

import os
from dataclasses import dataclass, replace
from pathlib import Path

import chardet
from dotenv import load_dotenv


# ===== 基本設定 =====
DEFAULT_API_VERSION = "2024-05-01-preview"
INPUT_DIR   = Path("input_files")
FONT_PATH   = INPUT_DIR / "Font.zip"
EXCEL_PATH  = INPUT_DIR / "Excel.zip"
OUTPUT_DIR  = Path("output_images")

POLL_INTERVAL          = 5.0    # manual ポーリング間隔（秒）
BLOCKING_POLL_INTERVAL = 1.0    # create_and_poll 側の間隔
MAX_WAIT               = 600.0  # 1ターンあたりの待ち上限（秒）

ASSISTANT_NAME = "AI Assistant for Excel File Analysis"
ASSISTANT_INSTRUCTIONS = "You are an AI assistant that analyzes EXCEL files. Please answer user requests in Japanese."
SEED_MESSAGE = (
    "アップロードされた Font.zip と Excel.zip を /mnt/data/upload_files に展開してください。"
    "これらの ZIP ファイルには解析対象の EXCEL ファイルと日本語フォント NotoSansJP.ttf が含まれています。"
    "展開した先にある EXCEL ファイルをユーザーの指示に従い解析してください。"
    "EXCEL データからグラフやチャート画像を生成する場合、タイトル、軸項目、凡例等に NotoSansJP.ttf を利用してください。"
)

ENV_ENDPOINT   = "AZURE_OPENAI_ENDPOINT"
ENV_API_KEY    = "AZURE_OPENAI_API_KEY"
ENV_VERSION    = "API_VERSION"
ENV_DEPLOYMENT = "DEPLOYMENT_NAME"


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Settings:
    endpoint: str
    api_key: str
    api_version: str
    deployment: str
    assistant_name: str = ASSISTANT_NAME
    instructions: str = ASSISTANT_INSTRUCTIONS
    seed_message: str = SEED_MESSAGE


def load_settings(env=None, dotenv_path=None) -> Settings:
    """環境変数（と .env）から接続設定を組み立てる。足りなければ ConfigError"""
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ
    missing = [k for k in (ENV_ENDPOINT, ENV_API_KEY, ENV_DEPLOYMENT) if not env.get(k)]
    if missing:
        raise ConfigError(f"{', '.join(missing)} が未設定です。.env か export で設定してください。")
    return Settings(
        endpoint=env[ENV_ENDPOINT].rstrip("/"),
        api_key=env[ENV_API_KEY],
        api_version=env.get(ENV_VERSION) or DEFAULT_API_VERSION,
        deployment=env[ENV_DEPLOYMENT],
    )


def read_text_file(path: Path) -> str:
    """UTF-8優先、ダメなら chardet 推測で読む（Shift_JIS の指示文など）"""
    raw = Path(path).read_bytes()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        enc = chardet.detect(raw).get("encoding") or "utf-8"
        return raw.decode(enc, errors="ignore")


def with_overrides(settings: Settings, instructions_file=None, seed_file=None) -> Settings:
    changes = {}
    if instructions_file:
        changes["instructions"] = read_text_file(instructions_file).strip()
    if seed_file:
        changes["seed_message"] = read_text_file(seed_file).strip()
    if not changes:
        return settings
    return replace(settings, **changes)
