"""
Test doubles: a scripted in-memory gateway, a fake clock and content builders.
"""

from xlchat.gateway import GatewayError


class FakeClock:
    """Monotonic clock that only advances when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeGateway:
    """Records every call in order and answers from scripted data.

    run_script: one list of statuses per created run; get_run walks the list
    and keeps returning the last status once it is exhausted.
    """

    def __init__(self, run_script=None, messages=None, file_contents=None,
                 last_error=None, fail_on=()):
        self.calls = []
        self.run_script = list(run_script or [])
        self.messages = messages if messages is not None else []
        self.file_contents = file_contents or {}
        self.last_error = last_error
        self.fail_on = set(fail_on)
        self._counter = 0
        self._runs = {}

    def _next_id(self, prefix):
        self._counter += 1
        return f"{prefix}_{self._counter}"

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise GatewayError(500, f"{name} exploded")

    def call_names(self):
        return [c[0] for c in self.calls]

    def upload_file(self, path, purpose="assistants"):
        self._record("upload_file", str(path), purpose)
        return {"id": self._next_id("file"), "purpose": purpose}

    def create_assistant(self, cfg):
        self._record("create_assistant", cfg)
        return {"id": self._next_id("asst")}

    def create_thread(self, seed):
        self._record("create_thread", seed)
        return {"id": self._next_id("thread")}

    def create_message(self, thread_id, role, content):
        self._record("create_message", thread_id, role, content)
        return {"id": self._next_id("msg")}

    def create_run(self, thread_id, assistant_id):
        self._record("create_run", thread_id, assistant_id)
        run_id = self._next_id("run")
        script = self.run_script.pop(0) if self.run_script else ["completed"]
        self._runs[run_id] = list(script)
        return {"id": run_id, "status": "queued"}

    def get_run(self, thread_id, run_id):
        self._record("get_run", thread_id, run_id)
        script = self._runs[run_id]
        status = script.pop(0) if len(script) > 1 else script[0]
        run = {"id": run_id, "status": status}
        if status == "failed":
            run["last_error"] = self.last_error
        return run

    def cancel_run(self, thread_id, run_id):
        self._record("cancel_run", thread_id, run_id)
        return {"id": run_id, "status": "cancelling"}

    def create_and_poll(self, thread_id, assistant_id, poll_interval=1.0, max_wait=None):
        self._record("create_and_poll", thread_id, assistant_id, poll_interval, max_wait)
        run = self.create_run(thread_id, assistant_id)
        return self.get_run(thread_id, run["id"])

    def list_messages(self, thread_id):
        self._record("list_messages", thread_id)
        return self.messages

    def get_file_content(self, file_id):
        self._record("get_file_content", file_id)
        if file_id not in self.file_contents:
            raise GatewayError(404, f"no such file: {file_id}")
        return self.file_contents[file_id]

    def delete_file(self, file_id):
        self._record("delete_file", file_id)

    def delete_assistant(self, assistant_id):
        self._record("delete_assistant", assistant_id)

    def delete_thread(self, thread_id):
        self._record("delete_thread", thread_id)


def text(value):
    return {"type": "text", "text": {"value": value, "annotations": []}}


def image(file_id):
    return {"type": "image_file", "image_file": {"file_id": file_id}}


def message(role, *blocks, run_id=None):
    m = {"role": role, "content": list(blocks)}
    if run_id:
        m["run_id"] = run_id
    return m


