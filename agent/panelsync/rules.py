from __future__ import annotations

import logging
import re
from typing import List, Optional

from .errors import RuleCompileError
from .models import LOCAL_RULE_ID, DetectRule
from .schemas import NodeRule

logger = logging.getLogger(__name__)

REJECT_MODE = "reject"
# "reg" is what older panels send
REGEX_RULE_TYPES = ("regex", "reg")


def compile_rule(rule_id: int, pattern: str) -> DetectRule:
    try:
        return DetectRule(id=int(rule_id), pattern=re.compile(pattern))
    except re.error as exc:
        raise RuleCompileError(pattern, exc, rule_id=rule_id) from exc


def load_local_rules(path: Optional[str]) -> List[DetectRule]:
    """Read one pattern per non-blank line, kept verbatim apart from the line ending.

    A file that cannot be opened leaves the local set empty. An error while
    reading an opened file propagates.
    """
    rules: List[DetectRule] = []
    if not path:
        return rules
    try:
        f = open(path, "r", encoding="utf-8")
    except FileNotFoundError:
        logger.warning("rule list %s not found, local rules disabled", path)
        return rules
    except OSError as exc:
        logger.error("error when opening rule list %s: %s", path, exc)
        return rules

    with f:
        for lineno, line in enumerate(f, start=1):
            pattern = line.rstrip("\r\n")
            # whitespace inside a pattern is significant, only blank lines are skipped
            if not pattern.strip():
                continue
            try:
                rules.append(compile_rule(LOCAL_RULE_ID, pattern))
            except RuleCompileError:
                logger.error("rule list %s line %d: invalid pattern %r", path, lineno, pattern)
                raise
    logger.info("loaded %d local detection rule(s) from %s", len(rules), path)
    return rules


def aggregate_rules(local_rules: List[DetectRule], node_rule: NodeRule) -> List[DetectRule]:
    rules = list(local_rules)
    # only reject rules are enforced, anything else is advisory
    if node_rule.mode != REJECT_MODE:
        return rules
    for item in node_rule.rules:
        if item.type in REGEX_RULE_TYPES:
            rules.append(compile_rule(item.id, item.pattern))
        else:
            logger.debug("skip panel rule %s with unsupported type %r", item.id, item.type)
    return rules
