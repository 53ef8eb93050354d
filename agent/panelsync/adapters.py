"""Protocol schema adapters.

One adapter per node type. The client picks its adapter once, from the
configured node type, and every payload-shape decision goes through it.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Tuple, Type

from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import ApiConfig
from .errors import DecodeError, UnsupportedNodeType
from .models import NodeInfo, UserInfo
from .schemas import (
    ShadowsocksNodeInfo,
    SSUser,
    TrojanNodeInfo,
    TrojanUser,
    V2rayNodeInfo,
    VMessUser,
)

logger = logging.getLogger(__name__)

# (normalized user carrying its base device limit, panel reported online count)
UserCandidate = Tuple[UserInfo, int]


def _decode(model: Any, raw: Any, payload_type: str) -> Any:
    try:
        if isinstance(model, TypeAdapter):
            return model.validate_python(raw)
        return model.model_validate(raw)
    except ValidationError as exc:
        logger.error("decode %s failed: %s", payload_type, exc.errors(include_url=False))
        raise DecodeError(payload_type, exc) from exc


class ProtocolAdapter:
    node_type: str = ""
    segment: str = ""
    node_schema: Type[BaseModel]
    user_schema: Type[BaseModel]

    def __init__(self, cfg: ApiConfig) -> None:
        self.cfg = cfg
        self.tls_type = "xtls" if cfg.enable_xtls else "tls"
        self._users_adapter = TypeAdapter(List[self.user_schema])  # type: ignore[name-defined]

    # shared field policy

    def speed_limit(self, payload_value: int) -> int:
        if self.cfg.speed_limit > 0:
            return int((self.cfg.speed_limit * 1000000) / 8)
        return int(payload_value)

    def device_limit(self, payload_value: int) -> int:
        if self.cfg.device_limit > 0:
            return int(self.cfg.device_limit)
        return int(payload_value)

    # decoding

    def parse_node_info(self, raw: Any) -> NodeInfo:
        info = _decode(self.node_schema, raw, self.node_schema.__name__)
        return self.build_node_info(info)

    def parse_user_list(self, raw: Any) -> List[UserCandidate]:
        users = _decode(self._users_adapter, raw, f"List[{self.user_schema.__name__}]")
        return [
            (
                UserInfo(
                    uid=u.uid,
                    speed_limit=self.speed_limit(u.speed_limit),
                    device_limit=self.device_limit(u.device_limit),
                    **self.credential_fields(u),
                ),
                int(u.online_count),
            )
            for u in users
        ]

    def build_node_info(self, info: Any) -> NodeInfo:
        raise NotImplementedError

    def credential_fields(self, user: Any) -> Dict[str, str]:
        raise NotImplementedError


class V2rayAdapter(ProtocolAdapter):
    node_type = "V2ray"
    segment = "v2ray"
    node_schema = V2rayNodeInfo
    user_schema = VMessUser

    def build_node_info(self, info: V2rayNodeInfo) -> NodeInfo:
        header = None
        if info.v2_type == "http":
            header = json.dumps(
                {"type": "http", "request": {"path": info.v2_path}},
                separators=(",", ":"),
            )
        return NodeInfo(
            node_type=self.node_type,
            node_id=self.cfg.node_id,
            port=info.v2_port,
            speed_limit=self.speed_limit(info.speed_limit),
            device_limit=self.device_limit(info.client_limit),
            alter_id=info.v2_alter_id,
            transport_protocol=info.v2_net,
            fake_type=info.v2_type,
            service_name=info.v2_path,
            header=header,
            enable_tls=info.v2_tls,
            tls_type=self.tls_type if info.v2_tls else "none",
            path=info.v2_path,
            host=info.v2_host,
            enable_vless=self.cfg.enable_vless,
        )

    def credential_fields(self, user: VMessUser) -> Dict[str, str]:
        return {"uuid": user.vmess_uid}


class TrojanAdapter(ProtocolAdapter):
    node_type = "Trojan"
    segment = "trojan"
    node_schema = TrojanNodeInfo
    user_schema = TrojanUser

    def build_node_info(self, info: TrojanNodeInfo) -> NodeInfo:
        return NodeInfo(
            node_type=self.node_type,
            node_id=self.cfg.node_id,
            port=info.trojan_port,
            speed_limit=self.speed_limit(info.speed_limit),
            device_limit=self.device_limit(info.client_limit),
            transport_protocol="tcp",
            enable_tls=True,
            tls_type=self.tls_type,
        )

    def credential_fields(self, user: TrojanUser) -> Dict[str, str]:
        # the proxy engine keys trojan users by password in the uuid slot
        return {"uuid": user.password}


class ShadowsocksAdapter(ProtocolAdapter):
    node_type = "Shadowsocks"
    segment = "ss"
    node_schema = ShadowsocksNodeInfo
    user_schema = SSUser

    def build_node_info(self, info: ShadowsocksNodeInfo) -> NodeInfo:
        return NodeInfo(
            node_type=self.node_type,
            node_id=self.cfg.node_id,
            port=info.port,
            speed_limit=self.speed_limit(info.speed_limit),
            device_limit=self.device_limit(info.client_limit),
            transport_protocol="tcp",
            cipher_method=info.method,
        )

    def credential_fields(self, user: SSUser) -> Dict[str, str]:
        return {"passwd": user.passwd}


ADAPTERS: Dict[str, Type[ProtocolAdapter]] = {
    V2rayAdapter.node_type: V2rayAdapter,
    TrojanAdapter.node_type: TrojanAdapter,
    ShadowsocksAdapter.node_type: ShadowsocksAdapter,
}


def get_adapter(cfg: ApiConfig) -> ProtocolAdapter:
    cls = ADAPTERS.get(str(cfg.node_type or ""))
    if cls is None:
        raise UnsupportedNodeType(cfg.node_type)
    return cls(cfg)
