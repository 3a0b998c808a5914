"""
Blocking Rule Synchronizer — keeps the redirect rules for the blocked-site
list in step with the timer phase.

The engine itself does not intercept traffic. Rules are handed to a backend:
the default in-memory backend is polled by the browser extension
(GET /blocking/rules); the hosts-file backend writes 0.0.0.0 entries.
Blocking is best-effort: backend failures are logged, never retried.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

BLOCKED_RULE_ID_START = 1000
BLOCKED_PAGE_PATH = "/blocked"

HOSTS_MARKER_START = "# === FOCUS ENGINE BLOCK START ==="
HOSTS_MARKER_END = "# === FOCUS ENGINE BLOCK END ==="


class RuleBackendError(RuntimeError):
    """The redirect mechanism rejected a rule update."""


@dataclass
class RedirectRule:
    id: int
    host: str
    priority: int = 1
    redirect_path: str = BLOCKED_PAGE_PATH
    resource_types: List[str] = field(default_factory=lambda: ["main_frame"])

    @property
    def url_filter(self) -> str:
        return f"*://*.{self.host}/*"

    def matches(self, url: str) -> bool:
        """True when *url* points at the host or one of its subdomains."""
        target = urlsplit(url if "://" in url else f"http://{url}").hostname or ""
        target = target.lower()
        return target == self.host or target.endswith("." + self.host)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "priority": self.priority,
            "action": {"type": "redirect", "redirect": {"extensionPath": self.redirect_path}},
            "condition": {"urlFilter": self.url_filter, "resourceTypes": list(self.resource_types)},
        }


def rule_id(index: int) -> int:
    return BLOCKED_RULE_ID_START + index


def build_rules(sites: Sequence[str]) -> List[RedirectRule]:
    return [RedirectRule(id=rule_id(i), host=site) for i, site in enumerate(sites)]


class RedirectRuleBackend(Protocol):

    def update_dynamic_rules(
        self, add_rules: Sequence[RedirectRule] = (), remove_rule_ids: Iterable[int] = ()
    ) -> None: ...

    def get_dynamic_rules(self) -> List[RedirectRule]: ...


class InMemoryRuleBackend:
    """Thread-safe rule table, read by the API for the browser extension."""

    def __init__(self):
        self._rules: Dict[int, RedirectRule] = {}
        self._lock = threading.Lock()

    def update_dynamic_rules(
        self, add_rules: Sequence[RedirectRule] = (), remove_rule_ids: Iterable[int] = ()
    ) -> None:
        with self._lock:
            for rid in remove_rule_ids:
                self._rules.pop(rid, None)
            for rule in add_rules:
                if rule.id in self._rules:
                    raise RuleBackendError(f"rule id {rule.id} already installed")
                self._rules[rule.id] = rule

    def get_dynamic_rules(self) -> List[RedirectRule]:
        with self._lock:
            return [self._rules[k] for k in sorted(self._rules)]


class HostsFileBackend(InMemoryRuleBackend):
    """Mirrors the rule table into a marker-delimited block of a hosts file."""

    def __init__(self, hosts_path: Path):
        super().__init__()
        self.hosts_path = Path(hosts_path)

    def update_dynamic_rules(
        self, add_rules: Sequence[RedirectRule] = (), remove_rule_ids: Iterable[int] = ()
    ) -> None:
        super().update_dynamic_rules(add_rules, remove_rule_ids)
        try:
            self._write_block(self.get_dynamic_rules())
        except OSError as e:
            raise RuleBackendError(f"cannot write {self.hosts_path}: {e}") from e

    def _write_block(self, rules: List[RedirectRule]) -> None:
        content = self.hosts_path.read_text(encoding="utf-8") if self.hosts_path.exists() else ""
        content = _strip_block(content)
        if rules:
            entries = [HOSTS_MARKER_START]
            for rule in rules:
                entries.append(f"0.0.0.0 {rule.host}")
                entries.append(f"0.0.0.0 www.{rule.host}")
            entries.append(HOSTS_MARKER_END)
            content = content.rstrip() + "\n\n" + "\n".join(entries) + "\n"
        self.hosts_path.write_text(content, encoding="utf-8")


def _strip_block(content: str) -> str:
    result = []
    in_block = False
    for line in content.split("\n"):
        if HOSTS_MARKER_START in line:
            in_block = True
            continue
        if HOSTS_MARKER_END in line:
            in_block = False
            continue
        if not in_block:
            result.append(line)
    while result and not result[-1].strip():
        result.pop()
    return "\n".join(result) + ("\n" if result else "")


class BlockingRuleSynchronizer:
    """
    install() reissues the complete rule set for the given sites; remove()
    clears it. Both are idempotent and also drop any rule still installed
    from an older site list.
    """

    def __init__(self, backend: Optional[RedirectRuleBackend] = None):
        self.backend: RedirectRuleBackend = backend or InMemoryRuleBackend()

    def install(self, sites: Sequence[str]) -> bool:
        rules = build_rules(sites)
        stale = self._installed_ids() | {r.id for r in rules}
        try:
            self.backend.update_dynamic_rules(remove_rule_ids=sorted(stale))
            self.backend.update_dynamic_rules(add_rules=rules)
        except Exception:
            logger.exception("failed to add blocking rules")
            return False
        logger.debug("installed %d blocking rules", len(rules))
        return True

    def remove(self, sites: Sequence[str]) -> bool:
        ids = self._installed_ids() | {rule_id(i) for i in range(len(sites))}
        try:
            self.backend.update_dynamic_rules(remove_rule_ids=sorted(ids))
        except Exception:
            logger.exception("failed to remove blocking rules")
            return False
        return True

    def active_rules(self) -> List[RedirectRule]:
        return self.backend.get_dynamic_rules()

    def blocked_rule_for(self, url: str) -> Optional[RedirectRule]:
        for rule in self.active_rules():
            if rule.matches(url):
                return rule
        return None

    def _installed_ids(self) -> set:
        try:
            return {r.id for r in self.backend.get_dynamic_rules()}
        except Exception:
            logger.exception("failed to read installed blocking rules")
            return set()
