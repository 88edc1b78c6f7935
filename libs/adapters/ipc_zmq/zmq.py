from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, cast

import zmq
from ports.ipc import EventPubPort, EventSubPort, ScannerCommandPort
from shared.contracts.v1.ipc_wire import (
    SCHEMA_V1,
    CommandEnvelope,
    ErrorInfo,
    EventEnvelope,
    ResponseEnvelope,
)

# --------- Common helpers ---------


def _new_ctx() -> zmq.Context:
    return zmq.Context.instance()


def _set_common(sock: zmq.Socket, rcv_ms: int = 500, snd_ms: int = 500) -> None:
    sock.setsockopt(zmq.LINGER, 0)
    sock.setsockopt(zmq.RCVTIMEO, rcv_ms)
    sock.setsockopt(zmq.SNDTIMEO, snd_ms)


def _command_payload(cmd: Any) -> dict[str, Any]:
    if isinstance(cmd, Mapping):
        return dict(cmd)
    if hasattr(cmd, "model_dump"):
        return cast(dict[str, Any], cmd.model_dump(mode="json"))
    out: dict[str, Any] = {"type": getattr(cmd, "type", "UNKNOWN")}
    if getattr(cmd, "on", None) is not None:
        out["on"] = bool(cmd.on)
    return out


# --------- ScannerCommandPort (REQ client + REP server) ---------


class ZmqScannerCommandPort(ScannerCommandPort):
    """
    Monitor-side REQ client for scanner commands.
    Scanner-side REP server is provided via bind_rep(...).
    """

    def __init__(self) -> None:
        self._ctx = _new_ctx()
        self._req_cache: dict[str, zmq.Socket] = {}

    @classmethod
    def bind_rep(cls, addr: str) -> ZmqCommandREPServer:
        return ZmqCommandREPServer(addr=addr)

    def _get_req(self, addr: str) -> zmq.Socket:
        s = self._req_cache.get(addr)
        if s is None:
            s = self._ctx.socket(zmq.REQ)
            _set_common(s)
            s.connect(addr)
            self._req_cache[addr] = s
        return s

    def _drop_req(self, addr: str) -> None:
        s = self._req_cache.pop(addr, None)
        if s is not None:
            try:
                s.close(0)
            except Exception:
                pass

    def send(self, addr: str, cmd: Any) -> dict[str, Any]:
        """
        Sends a CommandEnvelope and expects a ResponseEnvelope-like dict back.
        Retries once on timeout with a fresh socket (REQ is stuck after a lost reply).
        """
        msg_id = str(uuid.uuid4())
        payload = CommandEnvelope(msg_id=msg_id, command=_command_payload(cmd)).model_dump(
            mode="json"
        )

        for attempt in (1, 2):
            s = self._get_req(addr)
            try:
                s.send_json(payload)
                return cast(dict[str, Any], s.recv_json())
            except zmq.error.Again:
                self._drop_req(addr)
                if attempt == 2:
                    return ResponseEnvelope(
                        ok=False,
                        correlates_to=msg_id,
                        error=ErrorInfo(code="timeout", detail="REQ timeout"),
                    ).model_dump()
            except Exception as ex:
                self._drop_req(addr)
                return ResponseEnvelope(
                    ok=False,
                    correlates_to=msg_id,
                    error=ErrorInfo(code="internal", detail=repr(ex)),
                ).model_dump()
        raise AssertionError("unreachable")

    def close(self) -> None:
        for addr in list(self._req_cache):
            self._drop_req(addr)


@dataclass
class ZmqCommandREPServer:
    """
    Scanner-side REP server. Call `poll_once(handler)` from the scanner loop;
    timeout_ms=0 makes it safe to call from an asyncio task.
    """

    addr: str

    def __post_init__(self) -> None:
        self._ctx = _new_ctx()
        self._sock = self._ctx.socket(zmq.REP)
        _set_common(self._sock)
        self._sock.bind(self.addr)

    def close(self) -> None:
        self._sock.close(0)

    def _reply_error(self, msg_id: str, code: str, detail: str) -> None:
        self._sock.send_json(
            {"ok": False, "correlates_to": msg_id, "error": {"code": code, "detail": detail}}
        )

    def poll_once(self, handler: Callable[[dict], dict], timeout_ms: int = 10) -> bool:
        """
        Poll for one request; if present, process with handler(command_dict) -> response_dict.
        Returns True if a message was processed, False on idle.
        """
        try:
            if not self._sock.poll(timeout=timeout_ms):
                return False

            try:
                req = self._sock.recv_json()
            except Exception:
                self._reply_error("<unknown>", "bad-json", "Invalid JSON")
                return True

            msg_id = str(req.get("msg_id", "<unknown>"))
            if int(req.get("schema_version", 0)) != SCHEMA_V1:
                self._reply_error(msg_id, "api-mismatch", "schema_version != 1")
                return True

            try:
                result = handler(req.get("command") or {}) or {}
                self._sock.send_json({"ok": True, "correlates_to": msg_id, "data": result})
            except ValueError as ex:
                self._reply_error(msg_id, "bad-command", str(ex))
            except Exception as ex:
                self._reply_error(msg_id, "internal", repr(ex))
            return True

        except zmq.error.Again:
            return False


# --------- Events (PUB/SUB) ---------


class ZmqEventPubPort(EventPubPort):
    def __init__(self, addr: str) -> None:
        self._ctx = _new_ctx()
        self._pub = self._ctx.socket(zmq.PUB)
        _set_common(self._pub)
        self._pub.bind(addr)

    @classmethod
    def bind_pub(cls, addr: str) -> ZmqEventPubPort:
        return cls(addr)

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        env = EventEnvelope(msg_id=str(uuid.uuid4()), topic=topic, data=dict(payload))
        self._pub.send_multipart(
            [
                topic.encode("utf-8"),
                json.dumps(env.model_dump(mode="json")).encode("utf-8"),
            ]
        )

    def close(self) -> None:
        self._pub.close(0)


class ZmqEventSubPort(EventSubPort):
    def __init__(self) -> None:
        self._ctx = _new_ctx()
        self._sub = self._ctx.socket(zmq.SUB)
        _set_common(self._sub)
        self._sub.setsockopt(zmq.SUBSCRIBE, b"")
        self._sub.setsockopt(zmq.RCVHWM, 1000)

    def subscribe(self, addr: str) -> None:
        self._sub.connect(addr)

    def recv(self, timeout_ms: int = 100) -> dict[str, Any] | None:
        if not self._sub.poll(timeout=timeout_ms):
            return None
        topic, data = self._sub.recv_multipart()
        try:
            decoded = json.loads(data.decode("utf-8"))
        except Exception:
            return {"topic": topic.decode("utf-8"), "error": {"code": "bad-json"}}
        return {
            "topic": topic.decode("utf-8"),
            "data": decoded.get("data", {}),
            "envelope": decoded,
        }
