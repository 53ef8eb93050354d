"""Panel wire payloads.

Every model here mirrors one JSON shape the panel sends or expects. They are
decoded in two steps: :class:`Envelope` first (``data`` left untyped), then
the protocol adapter validates ``data`` against the node-type specific model.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Envelope(_Wire):
    status: str = ""
    code: Optional[int] = None
    message: Optional[str] = None
    data: Any = None


# node info

class V2rayNodeInfo(_Wire):
    id: int = 0
    is_udp: bool = False
    speed_limit: int = Field(0, ge=0)
    client_limit: int = Field(0, ge=0)
    push_port: int = 0
    v2_alter_id: int = 0
    v2_port: int = Field(..., ge=0, le=65535)
    v2_method: str = ""
    v2_net: str = "tcp"
    v2_type: str = "none"
    v2_host: str = ""
    v2_path: str = ""
    v2_tls: bool = False
    v2_cdn: bool = False
    v2_tls_provider: Optional[str] = None
    redirect_url: Optional[str] = None


class TrojanNodeInfo(_Wire):
    id: int = 0
    is_udp: bool = False
    speed_limit: int = Field(0, ge=0)
    client_limit: int = Field(0, ge=0)
    push_port: int = 0
    trojan_port: int = Field(..., ge=0, le=65535)


class ShadowsocksNodeInfo(_Wire):
    id: int = 0
    speed_limit: int = Field(0, ge=0)
    client_limit: int = Field(0, ge=0)
    method: str = ""
    port: int = Field(..., ge=0, le=65535)


# user list

class _WireUser(_Wire):
    uid: int
    speed_limit: int = Field(0, ge=0)
    device_limit: int = Field(0, ge=0, validation_alias=AliasChoices("device_limit", "client_limit"))
    online_count: int = Field(0, ge=0)


class VMessUser(_WireUser):
    vmess_uid: str


class TrojanUser(_WireUser):
    password: str


class SSUser(_WireUser):
    passwd: str
    method: str = ""


# rules

class NodeRuleItem(_Wire):
    id: int
    type: str
    pattern: str


class NodeRule(_Wire):
    mode: str = ""
    rules: List[NodeRuleItem] = Field(default_factory=list)


# reports (node -> panel)

class NodeStatusReport(BaseModel):
    cpu: str
    mem: str
    disk: str
    uptime: int


class NodeOnline(BaseModel):
    uid: int
    ip: str


class UserTrafficReport(BaseModel):
    uid: int
    upload: int
    download: int


class IllegalReport(BaseModel):
    uid: int
    rule_id: int
    reason: str
