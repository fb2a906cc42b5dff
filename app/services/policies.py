"""Named rate limit policies.

Policies are immutable values fixed at startup. The registry is a read-only
mapping keyed by policy name; adding a policy is a configuration change
(``RATE_LIMIT_POLICIES``), not a code change.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from app.core.config import PolicySettings
from app.core.errors import PolicyConfigurationError, UnknownPolicyError

logger = logging.getLogger(__name__)

KEY_PREFIX_ROOT = "rl"


def _is_positive_int(value: object) -> bool:
    # Store commands take integer milliseconds and counts; bool is an int subclass.
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


@dataclass(frozen=True)
class RateLimitPolicy:
    """Sliding-window limit applied to one class of endpoints.

    Attributes:
        name: Registry name (e.g., "auth").
        window_seconds: Length of the trailing window.
        max_requests: Attempts permitted inside one window.
        key_prefix: Store namespace; unique per policy.
    """

    name: str
    window_seconds: int
    max_requests: int
    key_prefix: str

    def __post_init__(self) -> None:
        if not self.name:
            raise PolicyConfigurationError(
                code="policy_invalid_name",
                message="Policy name must be a non-empty string",
            )
        if not _is_positive_int(self.window_seconds):
            raise PolicyConfigurationError(
                code="policy_invalid_window",
                message=f"Policy '{self.name}' window_seconds must be an integer >= 1",
                details={"policy": self.name},
            )
        if not _is_positive_int(self.max_requests):
            raise PolicyConfigurationError(
                code="policy_invalid_max_requests",
                message=f"Policy '{self.name}' max_requests must be an integer >= 1",
                details={"policy": self.name},
            )
        if not self.key_prefix:
            raise PolicyConfigurationError(
                code="policy_invalid_key_prefix",
                message=f"Policy '{self.name}' key_prefix must be a non-empty string",
                details={"policy": self.name},
            )

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


def _default_prefix(name: str) -> str:
    return f"{KEY_PREFIX_ROOT}:{name}"


DEFAULT_POLICIES: tuple[RateLimitPolicy, ...] = (
    RateLimitPolicy("auth", window_seconds=15 * 60, max_requests=10, key_prefix="rl:auth"),
    RateLimitPolicy("api", window_seconds=60, max_requests=100, key_prefix="rl:api"),
    RateLimitPolicy("ai", window_seconds=60, max_requests=20, key_prefix="rl:ai"),
    RateLimitPolicy(
        "content-submission",
        window_seconds=24 * 60 * 60,
        max_requests=100,
        key_prefix="rl:content-submission",
    ),
    RateLimitPolicy(
        "contact-form",
        window_seconds=15 * 60,
        max_requests=5,
        key_prefix="rl:contact-form",
    ),
)


class PolicyRegistry(Mapping[str, RateLimitPolicy]):
    """Read-only registry of named policies.

    Rejects duplicate key prefixes so two policies never share a store
    namespace for the same identifier.
    """

    def __init__(self, policies: Iterable[RateLimitPolicy]) -> None:
        by_name: dict[str, RateLimitPolicy] = {}
        owners: dict[str, str] = {}
        for policy in policies:
            owner = owners.get(policy.key_prefix)
            if owner is not None and owner != policy.name:
                raise PolicyConfigurationError(
                    code="policy_duplicate_key_prefix",
                    message=(
                        f"Policies '{owner}' and '{policy.name}' share key prefix "
                        f"'{policy.key_prefix}'"
                    ),
                    details={"policy": policy.name, "key_prefix": policy.key_prefix},
                )
            owners[policy.key_prefix] = policy.name
            by_name[policy.name] = policy
        self._policies = MappingProxyType(by_name)

    def __getitem__(self, name: str) -> RateLimitPolicy:
        return self._policies[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"PolicyRegistry({sorted(self._policies)})"

    def resolve(self, name: str) -> RateLimitPolicy:
        """Return the policy registered under ``name``.

        Raises:
            UnknownPolicyError: If no policy has that name.
        """
        try:
            return self._policies[name]
        except KeyError:
            raise UnknownPolicyError(
                code="policy_unknown",
                message=f"Unknown rate limit policy: '{name}'",
                details={"policy": name, "available": sorted(self._policies)},
            ) from None


def build_policy_registry(
    overrides: Mapping[str, PolicySettings] | None = None,
) -> PolicyRegistry:
    """Build the startup registry from defaults plus configured overrides.

    Args:
        overrides: Policy settings keyed by name. Existing names are replaced
            (keeping their key prefix unless one is given); new names are added.

    Returns:
        PolicyRegistry: Immutable registry.

    Raises:
        PolicyConfigurationError: If any resulting policy is invalid.
    """

    merged = {policy.name: policy for policy in DEFAULT_POLICIES}

    for name, override in (overrides or {}).items():
        current = merged.get(name)
        key_prefix = override.key_prefix or (
            current.key_prefix if current else _default_prefix(name)
        )
        merged[name] = RateLimitPolicy(
            name=name,
            window_seconds=override.window_seconds,
            max_requests=override.max_requests,
            key_prefix=key_prefix,
        )
        logger.info(
            "rate_limit.policy_configured",
            extra={
                "policy": name,
                "window_s": override.window_seconds,
                "max_requests": override.max_requests,
                "overrides_default": current is not None,
            },
        )

    return PolicyRegistry(tuple(merged.values()))
