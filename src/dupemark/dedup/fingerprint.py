"""
Request fingerprinting for duplicate detection.

A fingerprint is the canonical string two requests must share to count as
duplicates under the active ``ComparisonConfig``:

    <METHOD> <scheme>://<host>:<port><path> <token>&<token>&...

Tokens are ``facet:name[=value]`` strings for each enabled comparison
dimension, sorted ordinally. Every branch degrades to contributing nothing on
malformed input, so building a key never raises.
"""

import re
from typing import List

from dupemark.config import ComparisonConfig
from dupemark.protocols import HttpRequest, ParameterType

# A quoted string directly preceded by `{` or `,` (optional ASCII whitespace) and
# followed by `:`. Textual on purpose: tolerates malformed JSON.
JSON_KEY_PATTERN = re.compile(r'(?<=[{,])\s*"((?:[^"\\]|\\.)*)"\s*:', re.ASCII)

JSON_CONTENT_TYPE = "application/json"

# (parameter type, names prefix, values prefix, names flag, values flag)
_PARAMETER_FACETS = (
    (ParameterType.URL, "GN", "GV", "use_query_param_names", "use_query_param_values"),
    (ParameterType.BODY, "PN", "PV", "use_body_param_names", "use_body_param_values"),
    (ParameterType.COOKIE, "CN", "CV", "use_cookie_names", "use_cookie_values"),
)


class KeyBuilder:
    """
    Builds request fingerprints.

    Stateless apart from the precompiled JSON key pattern; one instance can be
    shared across threads.
    """

    def __init__(self) -> None:
        self._json_key_pattern = JSON_KEY_PATTERN

    def build_key(self, request: HttpRequest, config: ComparisonConfig) -> str:
        """
        Build the fingerprint for ``request`` under ``config``.

        Args:
            request: The intercepted request
            config: Comparison snapshot selecting the facets to include

        Returns:
            Canonical fingerprint string
        """
        prefix = self.service_prefix(request)
        path = request.path_without_query

        tokens: List[str] = []
        tokens.extend(self._parameter_tokens(request, config))
        tokens.extend(self._json_tokens(request, config))
        tokens.extend(self._header_tokens(request, config))

        tokens.sort()
        return f"{request.method} {prefix}{path} {'&'.join(tokens)}"

    @staticmethod
    def service_prefix(request: HttpRequest) -> str:
        return f"{request.scheme}://{request.host.lower()}:{request.port}"

    def _parameter_tokens(self, request: HttpRequest, config: ComparisonConfig) -> List[str]:
        tokens: List[str] = []
        for param_type, names_prefix, values_prefix, names_flag, values_flag in _PARAMETER_FACETS:
            use_names = getattr(config, names_flag)
            use_values = getattr(config, values_flag)
            if not (use_names or use_values):
                continue
            for param in request.parameters_of(param_type):
                if use_names:
                    tokens.append(f"{names_prefix}:{param.name}")
                if use_values:
                    tokens.append(f"{values_prefix}:{param.name}={param.value}")
        return tokens

    def _json_tokens(self, request: HttpRequest, config: ComparisonConfig) -> List[str]:
        if not config.use_json_keys:
            return []
        content_type = request.header_value("Content-Type")
        if content_type is None or JSON_CONTENT_TYPE not in content_type:
            return []

        body = request.body.decode("utf-8", errors="replace")
        # Repeated keys yield repeated tokens; multiplicity is part of the key.
        return [f"J:{match.group(1)}" for match in self._json_key_pattern.finditer(body)]

    def _header_tokens(self, request: HttpRequest, config: ComparisonConfig) -> List[str]:
        if not (config.use_header_names or config.use_header_values):
            return []
        tokens: List[str] = []
        for header in request.headers:
            name = header.name.lower()
            if name == "cookie":
                # Cookies are compared through COOKIE parameters
                continue
            if config.use_header_names:
                tokens.append(f"HN:{name}")
            if config.use_header_values:
                tokens.append(f"HV:{name}={header.value}")
        return tokens


_default_builder = KeyBuilder()


def build_key(request: HttpRequest, config: ComparisonConfig) -> str:
    """
    Convenience function for fingerprinting with a shared KeyBuilder.

    Args:
        request: The intercepted request
        config: Comparison snapshot

    Returns:
        Canonical fingerprint string
    """
    return _default_builder.build_key(request, config)
