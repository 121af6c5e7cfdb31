"""Rules over server declarations."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlparse

import yaml

from speclint.document import yml
from speclint.linter.fix import ScalarTransformFix
from speclint.linter.rule import CATEGORY_SECURITY, CATEGORY_STYLE, Rule
from speclint.linter.violation import Severity
from speclint.rules.fixes import AddServerFix
from speclint.rules.paths import strip_trailing_slashes

if TYPE_CHECKING:
    from speclint.document.index import Index
    from speclint.linter.rule import RuleConfig
    from speclint.linter.violation import Violation


def upgrade_to_https(url: str) -> str:
    if url[:7].lower() == "http://":
        return "https://" + url[7:]
    return url


def _is_templated(url: str) -> bool:
    return "{" in url


class HostTrailingSlashRule(Rule):
    id = "style-oas3-host-trailing-slash"
    category = CATEGORY_STYLE
    default_severity = Severity.WARNING
    summary = "Server URLs should not end with a trailing slash."
    description = (
        "Paths always start with `/`, so a server URL ending in `/` produces a double "
        "slash when the two are joined."
    )
    how_to_fix = "Remove the trailing slash from server URLs."
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for server in index.servers:
            url = str(server.node.value)
            if url == "/" or not url.endswith("/"):
                continue
            fix = ScalarTransformFix(
                server.node, strip_trailing_slashes, "Remove trailing slash from server URL"
            )
            violations.append(
                self.violation(config, server.node, f"server url `{url}` should not have a trailing slash", fix)
            )
        return violations


class SecurityHostsHttpsRule(Rule):
    id = "owasp-security-hosts-https-oas3"
    category = CATEGORY_SECURITY
    default_severity = Severity.ERROR
    summary = "Server URLs must use HTTPS."
    description = (
        "Plain HTTP exposes credentials and payloads in transit. Every absolute server "
        "URL should use the `https` scheme."
    )
    how_to_fix = "Serve the API over HTTPS and list only `https://` server URLs."
    link = "https://owasp.org/API-Security/editions/2023/en/0xa8-security-misconfiguration/"
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        violations: list[Violation] = []
        for server in index.servers:
            url = str(server.node.value)
            if url.startswith("/") or _is_templated(url):
                continue
            scheme = urlparse(url).scheme.lower()
            if scheme == "https" or not scheme:
                continue
            fix = None
            if scheme == "http":
                fix = ScalarTransformFix(server.node, upgrade_to_https, "Use HTTPS for server URL")
            violations.append(
                self.violation(config, server.node, f"server URL `{url}` must use HTTPS", fix)
            )
        return violations


class ApiServersRule(Rule):
    id = "style-oas3-api-servers"
    category = CATEGORY_STYLE
    default_severity = Severity.WARNING
    summary = "The document should declare at least one valid server."
    description = (
        "Without `servers`, tools fall back to `/` relative to wherever the document was "
        "loaded from. Declare the API's base URL explicitly."
    )
    how_to_fix = "Add a `servers` list with at least one absolute or relative URL."
    fix_available = True

    def run(self, index: Index, config: RuleConfig) -> list[Violation]:
        root = index.document.root
        servers_key, servers = yml.get_map_element(root, "servers")
        if not isinstance(servers, yaml.SequenceNode) or not servers.value:
            anchor = servers_key if servers_key is not None else root
            return [self.violation(config, anchor, "no servers defined for the specification", AddServerFix())]

        violations: list[Violation] = []
        for server in servers.value:
            url_node = yml.get_value(server, "url")
            if not isinstance(url_node, yaml.ScalarNode) or not str(url_node.value).strip():
                violations.append(self.violation(config, server, "server definition is missing a URL"))
                continue
            url = str(url_node.value)
            if url.startswith("/") or _is_templated(url):
                continue
            try:
                parsed = urlparse(url)
            except ValueError:
                parsed = None
            if parsed is None or not parsed.scheme:
                violations.append(self.violation(config, url_node, f'server URL "{url}" cannot be parsed'))
            elif not parsed.netloc:
                violations.append(
                    self.violation(
                        config, url_node, f'server URL "{url}" is not valid: no hostname or path provided'
                    )
                )
        return violations
