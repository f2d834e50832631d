"""Test doubles and constants shared across the test modules."""

import subprocess
import threading
import time

import httpx

API_BASE = "https://api.test/client/v4"
ACCOUNT_ID = "acc123"
TUNNEL_ID = "6ff42ae2-765d-4adf-8112-31c55c1551ef"
ZONE_ID = "zone123"


class FakeProcess:
    """ProcessHandle whose exit is controlled by the test.

    ``exit_on_signal`` makes SIGTERM end the process; otherwise it only
    exits on ``finish()`` or ``force_kill()`` (unless ``kill_error`` is set).
    """

    _next_pid = 40000

    def __init__(self, exit_on_signal=True, kill_error=None, signal_error=None):
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.exit_on_signal = exit_on_signal
        self.kill_error = kill_error
        self.signal_error = signal_error
        self.signals: list[int] = []
        self.killed = False
        self.command: list[str] = []
        self.returncode = None
        self._exited = threading.Event()

    def finish(self, code=0):
        self.returncode = code
        self._exited.set()

    def signal(self, sig):
        if self.signal_error is not None:
            raise self.signal_error
        self.signals.append(sig)
        if self.exit_on_signal:
            self.finish(-sig)

    def wait(self, timeout=None):
        if not self._exited.wait(timeout):
            raise subprocess.TimeoutExpired("cloudflared", timeout)
        return self.returncode

    def force_kill(self):
        if self.kill_error is not None:
            raise self.kill_error
        self.killed = True
        self.finish(-9)

    def poll(self):
        return self.returncode if self._exited.is_set() else None


def wait_for(predicate, timeout=2.0):
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def envelope(result=None, success=True, errors=None):
    return {"success": success, "result": result, "errors": errors or [], "messages": []}


def config_url(tunnel_id=TUNNEL_ID):
    return f"{API_BASE}/accounts/{ACCOUNT_ID}/cfd_tunnel/{tunnel_id}/configurations"


def json_response(payload, status_code=200):
    return httpx.Response(status_code, json=payload)
