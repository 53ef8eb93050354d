"""Node-side client of the management panel.

``PanelClient`` is the per-cycle surface used by the node agent: pull the
node config, the user list and the detection rules, and push status, online
users, traffic and rule violations back.

A client is bound to one node type and one node id for its whole life. The
protocol adapter is chosen in the constructor; an unknown node type fails
right there.
"""
from __future__ import annotations

import json
import logging
import math
import threading
from typing import Any, Iterable, List, Optional

import httpx
from pydantic import BaseModel

from .adapters import ProtocolAdapter, get_adapter
from .config import ApiConfig
from .errors import DecodeError, ServerEnvelopeError
from .models import (
    ClientInfo,
    DetectResult,
    DetectRule,
    NodeInfo,
    NodeStatus,
    OnlineUser,
    UserInfo,
    UserTraffic,
)
from .reconciler import LimitReconciler
from .redact import mask_secret, redact_for_log
from .rules import aggregate_rules, load_local_rules
from .schemas import (
    Envelope,
    IllegalReport,
    NodeOnline,
    NodeRule,
    NodeStatusReport,
    UserTrafficReport,
)
from .transport import PanelTransport

logger = logging.getLogger(__name__)

SUCCESS = "success"
ILLEGAL_REASON = "node agent cannot save reason"


def _percent(value: float) -> str:
    # non-finite readings are reported as 0%
    if not math.isfinite(value):
        return "0%"
    return f"{int(max(0.0, min(100.0, value)))}%"


def _dump(items: Iterable[BaseModel]) -> List[dict]:
    return [i.model_dump() for i in items]


class PanelClient:
    def __init__(
        self,
        config: ApiConfig,
        transport: Optional[PanelTransport] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config
        self.adapter: ProtocolAdapter = get_adapter(config)
        self.transport = transport or PanelTransport(
            config.api_host,
            config.key,
            timeout=config.effective_timeout,
            retry_count=config.effective_retry_count,
            verify_tls=config.verify_tls,
            http_client=http_client,
        )
        self.local_rules: List[DetectRule] = load_local_rules(config.rule_list_path)
        self.reconciler = LimitReconciler()
        # serializes online reports: retained counts and the last body sent must agree
        self._report_lock = threading.Lock()

    def __enter__(self) -> "PanelClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self.transport.close()

    @property
    def node_type(self) -> str:
        return self.adapter.node_type

    @property
    def node_id(self) -> int:
        return int(self.config.node_id)

    def describe(self) -> ClientInfo:
        return ClientInfo(
            api_host=self.config.api_host,
            node_id=self.node_id,
            key=mask_secret(self.config.key),
            node_type=self.node_type,
        )

    def debug(self, enabled: bool = True) -> None:
        self.transport.debug = bool(enabled)
        if enabled:
            logging.getLogger("panelsync").setLevel(logging.DEBUG)

    def path(self, operation: str) -> str:
        return f"/api/{self.adapter.segment}/v1/{operation}/{self.node_id}"

    # envelope

    def _call(self, method: str, operation: str, body: Any = None) -> Any:
        raw = self.transport.request(method, self.path(operation), body)
        try:
            envelope = Envelope.model_validate(raw)
        except ValueError as exc:
            raise DecodeError("Response", exc) from exc
        if envelope.status != SUCCESS:
            dumped = json.dumps(redact_for_log(raw), ensure_ascii=False, default=str)
            logger.warning("panel rejected %s: %s", operation, dumped)
            raise ServerEnvelopeError(dumped)
        return envelope.data

    # pull

    def get_node_info(self) -> NodeInfo:
        data = self._call("GET", "node")
        return self.adapter.parse_node_info(data)

    def get_user_list(self) -> List[UserInfo]:
        data = self._call("GET", "userList")
        candidates = self.adapter.parse_user_list(data)
        users = self.reconciler.reconcile(candidates)
        logger.debug("user list: %d from panel, %d after device limits", len(candidates), len(users))
        return users

    def get_node_rule(self) -> List[DetectRule]:
        data = self._call("GET", "nodeRule")
        try:
            node_rule = NodeRule.model_validate(data)
        except ValueError as exc:
            raise DecodeError(NodeRule.__name__, exc) from exc
        return aggregate_rules(self.local_rules, node_rule)

    # push

    def report_node_status(self, status: NodeStatus) -> None:
        report = NodeStatusReport(
            cpu=_percent(status.cpu),
            mem=_percent(status.mem),
            disk=_percent(status.disk),
            uptime=int(status.uptime),
        )
        self._call("POST", "nodeStatus", report.model_dump())

    def report_node_online_users(self, users: Iterable[OnlineUser]) -> None:
        users = list(users)
        body = _dump(NodeOnline(uid=u.uid, ip=u.ip) for u in users)
        with self._report_lock:
            counts = self.reconciler.record_online(users)
            logger.debug("online report: %d session(s), %d user(s)", len(users), len(counts))
            self._call("POST", "nodeOnline", body)

    def report_user_traffic(self, traffic: Iterable[UserTraffic]) -> None:
        body = _dump(
            UserTrafficReport(uid=t.uid, upload=t.upload, download=t.download) for t in traffic
        )
        self._call("POST", "userTraffic", body)

    def report_illegal(self, results: Iterable[DetectResult]) -> None:
        for r in results:
            report = IllegalReport(uid=r.uid, rule_id=r.rule_id, reason=ILLEGAL_REASON)
            self._call("POST", "trigger", report.model_dump())
