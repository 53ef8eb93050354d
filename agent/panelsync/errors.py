from __future__ import annotations

from typing import Optional


class PanelError(RuntimeError):
    """Raised when a node <-> panel operation failed."""


class TransportError(PanelError):
    """Network failure, timeout after retries, or an HTTP status >= 400."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServerEnvelopeError(PanelError):
    """The panel answered, but the envelope status is not ``success``."""

    def __init__(self, envelope: str) -> None:
        super().__init__(f"Ret {envelope} invalid")
        self.envelope = envelope


class DecodeError(PanelError):
    def __init__(self, payload_type: str, cause: Exception) -> None:
        super().__init__(f"Unmarshal {payload_type} failed: {cause}")
        self.payload_type = payload_type
        self.cause = cause


class UnsupportedNodeType(PanelError):
    def __init__(self, node_type: str) -> None:
        super().__init__(f"Unsupported Node type: {node_type}")
        self.node_type = node_type


class RuleCompileError(PanelError):
    def __init__(self, pattern: str, cause: Exception, rule_id: Optional[int] = None) -> None:
        where = f" (rule {rule_id})" if rule_id is not None else ""
        super().__init__(f"invalid detection rule{where} {pattern!r}: {cause}")
        self.pattern = pattern
        self.rule_id = rule_id
        self.cause = cause
