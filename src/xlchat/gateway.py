"""Azure OpenAI Assistants API（REST）への薄いラッパ

SDK は使わず requests で直接叩く。全メソッドは 1 回のリモート呼び出しで完結し、
2xx 以外は GatewayError を送出する（create_and_poll だけは内部でポーリングする）。
"""

import mimetypes
import time
from pathlib import Path

import requests

ASSISTANTS_PURPOSE = "assistants"
PENDING_STATUSES   = {"queued", "in_progress"}
PAGE_LIMIT         = 100


class GatewayError(RuntimeError):
    def __init__(self, status, body):
        self.status = status
        self.body = body
        super().__init__(f"API error {status}: {body}")


class AssistantsGateway:
    def __init__(self, endpoint, api_key, api_version, session=None, timeout=600,
                 sleep=time.sleep, clock=time.monotonic):
        self.base = f"{endpoint.rstrip('/')}/openai"
        self.api_version = api_version
        self.timeout = timeout
        self.http = session or requests.Session()
        self.http.headers.update({"api-key": api_key, "OpenAI-Beta": "assistants=v2"})
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(cls, settings, **kw):
        return cls(settings.endpoint, settings.api_key, settings.api_version, **kw)

    # ===== 低レベル =====
    def _request(self, method, path, **kw):
        params = {"api-version": self.api_version, **kw.pop("params", {})}
        try:
            r = self.http.request(method, f"{self.base}{path}", params=params, timeout=self.timeout, **kw)
        except requests.RequestException as e:
            raise GatewayError(None, f"{type(e).__name__}: {e}") from e
        if not 200 <= r.status_code < 300:
            raise GatewayError(r.status_code, r.text)
        return r

    def _json(self, method, path, **kw):
        r = self._request(method, path, **kw)
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            raise GatewayError(r.status_code, r.text) from e

    # ===== Files =====
    def upload_file(self, path, purpose=ASSISTANTS_PURPOSE) -> dict:
        p = Path(path)
        ctype = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
        with open(p, "rb") as f:
            return self._json("POST", "/files", files={"file": (p.name, f, ctype)}, data={"purpose": purpose})

    def get_file_content(self, file_id) -> bytes:
        return self._request("GET", f"/files/{file_id}/content").content

    def delete_file(self, file_id):
        return self._json("DELETE", f"/files/{file_id}")

    # ===== Assistants / Threads =====
    def create_assistant(self, config: dict) -> dict:
        return self._json("POST", "/assistants", json=config)

    def delete_assistant(self, assistant_id):
        return self._json("DELETE", f"/assistants/{assistant_id}")

    def create_thread(self, seed: dict) -> dict:
        return self._json("POST", "/threads", json=seed)

    def delete_thread(self, thread_id):
        return self._json("DELETE", f"/threads/{thread_id}")

    # ===== Messages =====
    def create_message(self, thread_id, role, content) -> dict:
        return self._json("POST", f"/threads/{thread_id}/messages", json={"role": role, "content": content})

    def list_messages(self, thread_id) -> list:
        """新しい順で全件。has_more があれば after で続きを取る"""
        out, params = [], {"limit": PAGE_LIMIT, "order": "desc"}
        while True:
            page = self._json("GET", f"/threads/{thread_id}/messages", params=params)
            data = page.get("data") or []
            out.extend(data)
            if not page.get("has_more") or not data:
                return out
            params = {**params, "after": page.get("last_id") or data[-1]["id"]}

    # ===== Runs =====
    def create_run(self, thread_id, assistant_id) -> dict:
        return self._json("POST", f"/threads/{thread_id}/runs", json={"assistant_id": assistant_id})

    def get_run(self, thread_id, run_id) -> dict:
        return self._json("GET", f"/threads/{thread_id}/runs/{run_id}")

    def cancel_run(self, thread_id, run_id) -> dict:
        return self._json("POST", f"/threads/{thread_id}/runs/{run_id}/cancel")

    def create_and_poll(self, thread_id, assistant_id, poll_interval=1.0, max_wait=None) -> dict:
        """run を作って queued/in_progress を抜けるまで待つ。max_wait 超過時は最後に見た run を返す"""
        run = self.create_run(thread_id, assistant_id)
        deadline = None if max_wait is None else self._clock() + max_wait
        while run.get("status") in PENDING_STATUSES:
            if deadline is not None and self._clock() >= deadline:
                return run
            self._sleep(poll_interval)
            run = self.get_run(thread_id, run["id"])
        return run
