"""フォント/EXCEL ファイル・アシスタント・スレッドの作成と後始末"""

import sys
from dataclasses import dataclass, field
from typing import Optional

from xlchat.gateway import GatewayError

CODE_INTERPRETER = {"type": "code_interpreter"}


@dataclass
class SessionHandle:
    font_file_id: Optional[str] = None
    assistant_id: Optional[str] = None
    excel_file_id: Optional[str] = None
    thread_id: Optional[str] = None


class SetupError(RuntimeError):
    """setup 途中で失敗。handle にはそこまでに作れた ID が入っている"""

    def __init__(self, cause, handle: SessionHandle):
        self.cause = cause
        self.handle = handle
        super().__init__(str(cause))


def assistant_config(settings, font_file_id) -> dict:
    return {
        "name": settings.assistant_name,
        "model": settings.deployment,
        "instructions": settings.instructions,
        "tools": [CODE_INTERPRETER],
        "tool_resources": {"code_interpreter": {"file_ids": [font_file_id]}},
    }


def thread_seed(settings, font_file_id, excel_file_id) -> dict:
    # 添付は 1 ファイル 1 エントリ
    return {
        "messages": [{
            "role": "user",
            "content": settings.seed_message,
            "attachments": [
                {"file_id": font_file_id, "tools": [CODE_INTERPRETER]},
                {"file_id": excel_file_id, "tools": [CODE_INTERPRETER]},
            ],
        }]
    }


def setup(gateway, settings, font_path, excel_path) -> SessionHandle:
    """font → assistant → excel → thread の順に作る。失敗したらそこで止めて SetupError"""
    handle = SessionHandle()
    try:
        handle.font_file_id = gateway.upload_file(font_path)["id"]
        print(f"Font file uploaded successfully. File ID: {handle.font_file_id}")

        handle.assistant_id = gateway.create_assistant(assistant_config(settings, handle.font_file_id))["id"]
        print(f"Assistant created successfully. Assistant ID: {handle.assistant_id}")

        handle.excel_file_id = gateway.upload_file(excel_path)["id"]
        print(f"Excel file uploaded successfully. File ID: {handle.excel_file_id}")

        handle.thread_id = gateway.create_thread(
            thread_seed(settings, handle.font_file_id, handle.excel_file_id))["id"]
        print(f"Thread created successfully. Thread ID: {handle.thread_id}")
    except (GatewayError, OSError, KeyError) as e:
        raise SetupError(e, handle) from e
    return handle


@dataclass
class TeardownReport:
    deleted: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    @property
    def ok(self):
        return not self.errors


def teardown(gateway, handle: SessionHandle) -> TeardownReport:
    """thread → excel → assistant → font の順に削除。1 件失敗しても残りは試す"""
    steps = [
        ("Thread", handle.thread_id, gateway.delete_thread),
        ("Excel file", handle.excel_file_id, gateway.delete_file),
        ("Assistant", handle.assistant_id, gateway.delete_assistant),
        ("Font file", handle.font_file_id, gateway.delete_file),
    ]
    report = TeardownReport()
    for label, rid, delete in steps:
        if not rid:
            continue
        try:
            delete(rid)
        except Exception as e:
            print(f"[error] {label} の削除に失敗: {rid} ({e})", file=sys.stderr)
            report.errors.append((label, rid, e))
            continue
        print(f"{label} deleted successfully.")
        report.deleted.append((label, rid))
    return report
