"""1 ターン分の run を投げて終端まで待つ"""

import json
import sys
import time
from dataclasses import dataclass, field
from enum import Enum

from xlchat import config
from xlchat.gateway import GatewayError, PENDING_STATUSES


class Outcome(Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    OTHER = "other"
    TIMEOUT = "timeout"


@dataclass
class PollResult:
    outcome: Outcome
    run: dict
    messages: list = field(default_factory=list)


def submit_turn(gateway, handle, text) -> dict:
    """ユーザー発話を追加してから run を作る（順序固定）"""
    gateway.create_message(handle.thread_id, "user", text)
    run = gateway.create_run(handle.thread_id, handle.assistant_id)
    print(f"Run created:  {json.dumps(run, ensure_ascii=False)}")
    return run


def dump_messages(messages):
    for m in messages:
        print(f"[trace] {json.dumps(m.get('content', []), ensure_ascii=False)}", file=sys.stderr)


class RunPoller:
    """strategy="manual": 自前ループ（既定 5 秒間隔・途中経過を表示）
    strategy="blocking": gateway.create_and_poll に任せる（既定 1 秒間隔）
    どちらも max_wait を超えたら TIMEOUT を返し、run のキャンセルを試みる。
    """

    def __init__(self, gateway, strategy="manual", interval=None, max_wait=config.MAX_WAIT,
                 backoff=1.0, max_interval=60.0, trace=True, sleep=time.sleep, clock=time.monotonic):
        if strategy not in ("manual", "blocking"):
            raise ValueError(f"unknown poll strategy: {strategy}")
        if interval is None:
            interval = config.POLL_INTERVAL if strategy == "manual" else config.BLOCKING_POLL_INTERVAL
        self.gateway = gateway
        self.strategy = strategy
        self.interval = interval
        self.max_wait = max_wait
        self.backoff = backoff
        self.max_interval = max_interval
        self.trace = trace
        self._sleep = sleep
        self._clock = clock

    def run_turn(self, handle, text) -> PollResult:
        if self.strategy == "blocking":
            self.gateway.create_message(handle.thread_id, "user", text)
            run = self.gateway.create_and_poll(handle.thread_id, handle.assistant_id,
                                               poll_interval=self.interval, max_wait=self.max_wait)
            if run.get("status") in PENDING_STATUSES:
                return self._timeout(handle, run)
            return self._finish(run, self.gateway.list_messages(handle.thread_id))
        return self.poll(handle, submit_turn(self.gateway, handle, text))

    def poll(self, handle, run) -> PollResult:
        print("\nWaiting for response...")
        deadline = None if self.max_wait is None else self._clock() + self.max_wait
        delay = self.interval
        while True:
            run = self.gateway.get_run(handle.thread_id, run["id"])
            messages = self.gateway.list_messages(handle.thread_id)
            status = run.get("status")
            if status not in PENDING_STATUSES:
                return self._finish(run, messages)

            print(f"\nRun status: {status}")
            if self.trace:
                dump_messages(messages)
            if deadline is not None and self._clock() + delay > deadline:
                return self._timeout(handle, run, messages)
            self._sleep(delay)
            delay = min(delay * self.backoff, self.max_interval)

    def _finish(self, run, messages) -> PollResult:
        status = run.get("status")
        print(f"\nRun status: {status}")
        if status == "completed":
            if self.trace:
                dump_messages(messages)
            return PollResult(Outcome.COMPLETED, run, messages)
        if status == "failed":
            err = run.get("last_error") or {}
            print(f"Error Code: {err.get('code')}, Message: {err.get('message')}")
            return PollResult(Outcome.FAILED, run, messages)
        return PollResult(Outcome.OTHER, run, messages)

    def _timeout(self, handle, run, messages=None) -> PollResult:
        print(f"[warn] {self.max_wait} 秒待っても run が終わりませんでした (status={run.get('status')})", file=sys.stderr)
        try:
            run = self.gateway.cancel_run(handle.thread_id, run["id"])
        except GatewayError as e:
            print(f"[warn] run のキャンセルに失敗: {e}", file=sys.stderr)
        return PollResult(Outcome.TIMEOUT, run, messages or [])
