from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


NodeType = Literal["V2ray", "Trojan", "Shadowsocks"]
TLSType = Literal["none", "tls", "xtls"]

LOCAL_RULE_ID = -1


class NodeInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_type: NodeType
    node_id: int
    port: int
    speed_limit: int = Field(0, description="bytes/sec, 0 = unlimited")
    device_limit: int = Field(0, description="0 = unlimited")
    alter_id: int = 0
    transport_protocol: str = "tcp"
    fake_type: str = ""
    service_name: str = ""
    host: str = ""
    path: str = ""
    header: Optional[str] = Field(None, description="opaque JSON header fragment")
    enable_tls: bool = False
    tls_type: TLSType = "none"
    cipher_method: str = ""
    enable_vless: bool = False


class UserInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    uid: int
    email: str = ""
    uuid: str = ""
    passwd: str = ""
    speed_limit: int = 0
    device_limit: int = 0

    @property
    def credential(self) -> str:
        return self.uuid or self.passwd


class OnlineUser(BaseModel):
    uid: int
    ip: str


class UserTraffic(BaseModel):
    uid: int
    upload: int = 0
    download: int = 0


class NodeStatus(BaseModel):
    cpu: float = Field(0.0, description="percent")
    mem: float = Field(0.0, description="percent")
    disk: float = Field(0.0, description="percent")
    uptime: int = Field(0, description="seconds")


class DetectResult(BaseModel):
    uid: int
    rule_id: int


class ClientInfo(BaseModel):
    api_host: str
    node_id: int
    key: str
    node_type: str


@dataclass(frozen=True)
class DetectRule:
    id: int
    pattern: "re.Pattern[str]"

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None
