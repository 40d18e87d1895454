# Copyright 2025 Lars Marowsky-Brée <lars@marowsky-bree.eu>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Secret token detection.

Patterns are curated from gitleaks (https://github.com/gitleaks/gitleaks).
Each targets one service's token format and carries its own minimum length,
so short coincidental prefixes like ``sk-ip`` never match.
"""

import re

from .models import Match

SECRET_MARKER = "[SECRET REDACTED]"

SECRET_PATTERNS: list[tuple[str, str]] = [
    # AI/ML platforms
    ("anthropic", r"sk-ant-api\d{2}-[a-zA-Z0-9_-]{20,}"),
    ("openai-project", r"sk-proj-[a-zA-Z0-9]{20,}"),
    ("openrouter", r"sk-or-[a-zA-Z0-9_-]{20,}"),
    # Cloud providers
    ("aws-access-key", r"AKIA[0-9A-Z]{16}"),
    ("gcp-api-key", r"AIza[0-9A-Za-z_-]{35}"),
    # GitHub
    ("github-pat", r"ghp_[0-9a-zA-Z]{36}"),
    ("github-oauth", r"gho_[0-9a-zA-Z]{36}"),
    ("github-server", r"ghs_[0-9a-zA-Z]{36,}"),
    ("github-user", r"ghu_[0-9a-zA-Z]{36}"),
    ("github-fine-grained", r"github_pat_[0-9a-zA-Z_]{82}"),
    # GitLab
    ("gitlab-pat", r"glpat-[0-9a-zA-Z_-]{20,}"),
    ("gitlab-pipeline", r"glptt-[0-9a-f]{40}"),
    ("gitlab-runner", r"GR1348941[0-9a-zA-Z_-]{20,}"),
    # Slack
    ("slack-bot", r"xoxb-[0-9]+-[0-9A-Za-z-]+"),
    ("slack-user", r"xoxp-[0-9]+-[0-9A-Za-z-]+"),
    ("slack-app", r"xoxa-[0-9]+-[0-9A-Za-z-]+"),
    ("slack-config", r"xoxe-[0-9]+-[0-9A-Za-z-]+"),
    # Stripe secret/restricted keys
    ("stripe", r"(?:sk|rk)_(?:live|test|prod)_[0-9a-zA-Z]{24,}"),
    # Package registries
    ("npm", r"npm_[0-9a-zA-Z]{36}"),
    ("pypi", r"pypi-[0-9a-zA-Z_-]{16,}"),
    # SaaS tools
    ("sendgrid", r"SG\.[0-9a-zA-Z_-]{22}\.[0-9a-zA-Z_-]{43}"),
    ("twilio", r"SK[0-9a-fA-F]{32}"),
    ("postman", r"PMAK-[0-9a-fA-F]{24}-[0-9a-fA-F]{34}"),
    ("linear", r"lin_api_[a-zA-Z0-9]{40}"),
    ("doppler", r"dp\.pt\.[a-zA-Z0-9]{43}"),
    ("databricks", r"dapi[0-9a-f]{32}"),
    # DigitalOcean
    ("digitalocean-pat", r"dop_v1_[a-f0-9]{64}"),
    ("digitalocean-oauth", r"doo_v1_[a-f0-9]{64}"),
    ("digitalocean-refresh", r"dor_v1_[a-f0-9]{64}"),
    # Hashicorp Vault
    ("vault-service", r"hvs\.[a-zA-Z0-9_-]{24,}"),
    ("vault-batch", r"hvb\.[a-zA-Z0-9_-]{100,}"),
    ("pulumi", r"pul-[a-f0-9]{40}"),
    # Shopify
    ("shopify-shared-secret", r"shpss_[0-9a-fA-F]{32}"),
    ("shopify-access-token", r"shpat_[0-9a-fA-F]{32}"),
    ("shopify-custom-app", r"shpca_[0-9a-fA-F]{32}"),
    ("shopify-private-app", r"shppa_[0-9a-fA-F]{32}"),
    # Connection strings with embedded credentials
    ("mongodb-uri", r"mongodb(?:\+srv)?://[^:@\s]{3,}:[^@\s]{3,}@[^\s]+"),
    # Grafana
    ("grafana-cloud", r"glc_[A-Za-z0-9+/]{32,}={0,2}"),
    ("grafana-service-account", r"glsa_[A-Za-z0-9]{32}_[A-Fa-f0-9]{8}"),
    # PlanetScale
    ("planetscale-token", r"pscale_tkn_[a-zA-Z0-9_.-]{43}"),
    ("planetscale-oauth", r"pscale_oauth_[a-zA-Z0-9_.-]{43}"),
    ("contentful", r"CFPAT-[a-zA-Z0-9_-]{43}"),
    # Encryption keys
    ("age-secret-key", r"AGE-SECRET-KEY-1[qpzry9x8gf2tvdw0s3jn54khce6mua7l]{58}"),
    ("pem-private-key", r"-----BEGIN[A-Z ]*PRIVATE KEY-----"),
]


def _group_name(index: int) -> str:
    return f"p{index}"


class SecretMatcher:
    """Scans lines for known secret token shapes.

    All patterns are combined into one alternation, so matches never overlap
    and are reported left to right.
    """

    def __init__(self, patterns: list[tuple[str, str]] | None = None) -> None:
        self.patterns = SECRET_PATTERNS if patterns is None else patterns
        self._kinds = {_group_name(i): kind for i, (kind, _) in enumerate(self.patterns)}
        alternation = "|".join(
            f"(?P<{_group_name(i)}>{regex})" for i, (_, regex) in enumerate(self.patterns)
        )
        self._regex = re.compile(alternation)

    def scan(self, line: str) -> list[Match]:
        """Return all secret matches in a single line, in order."""
        return [
            Match(
                start=m.start(),
                end=m.end(),
                text=m.group(),
                kind=self._kinds[m.lastgroup or ""],
            )
            for m in self._regex.finditer(line)
        ]

    def find_all(self, line: str) -> list[str]:
        """Return the matched secret substrings of a single line."""
        return [m.group() for m in self._regex.finditer(line)]

    def redact_line(self, line: str) -> tuple[str, int]:
        """Replace each secret in a line with the marker. Returns (line, count)."""
        return self._regex.subn(SECRET_MARKER, line)
