"""
Dev Agent Atomic IDs (AIDs)

Typed, prefix-tagged identifiers for domain entities, e.g. ``g-k3f9x2``.

Composition is ``<prefix>-[timestamp]-[counter]-<random>``, truncated to the
configured total length. Uniqueness is checked twice: against the ids this
generator already minted, and against a caller-supplied persistence check.

Usage:
    from dev_agent.aid import AIDGenerator

    generator = AIDGenerator()
    goal_id = generator.generate_unique("g", repository.is_id_available)
"""

import logging
import re
import secrets
import string
import time
from typing import Any, Callable, Dict, Optional, Set

from pydantic import BaseModel, Field

from dev_agent.exceptions import RetryExhaustedError, ValidationError

logger = logging.getLogger(__name__)


AID_REGISTRY: Dict[str, str] = {
    "g": "Goal/Task",
    "d": "Document",
    "f": "File",
    "a": "API Endpoint",
    "s": "Script",
    "p": "Prompt",
}

AID_PATTERN = re.compile(r"^[a-z]-[a-z0-9-]{4,}$")

ALPHABET = string.ascii_lowercase + string.digits
BASE36_DIGITS = string.digits + string.ascii_lowercase

TIMESTAMP_WIDTH = 4
COUNTER_WIDTH = 2
# Counter fragments wrap modulo 36**COUNTER_WIDTH
COUNTER_MODULUS = 36 ** COUNTER_WIDTH

UniquenessCheck = Callable[[str], bool]


class AIDConfig(BaseModel):
    """Composition and retry settings for AID generation."""

    max_retries: int = Field(default=10, ge=1)
    # Total length including prefix (g-xxxxxx is 8 chars)
    id_length: int = Field(default=8, ge=6, le=64)
    use_timestamp: bool = False
    use_counter: bool = False


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base36."""
    if value < 0:
        raise ValueError("base36 encoding expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def is_too_similar(first: str, second: str) -> bool:
    """Equal-length ids that differ in only one or two positions."""
    if len(first) != len(second):
        return False
    differences = sum(1 for a, b in zip(first, second) if a != b)
    return 0 < differences <= 2


class AIDGenerator:
    """Mints AIDs with session and persistence uniqueness checks.

    The counter map and the seen-set belong to the instance; use one
    generator from one caller context at a time.
    """

    def __init__(self, config: Optional[AIDConfig] = None, **overrides: Any):
        base = config or AIDConfig()
        self.config = AIDConfig(**{**base.model_dump(), **overrides}) if overrides else base
        self._counters: Dict[str, int] = {}
        self._used_ids: Set[str] = set()
        self.reset_counters()

    def generate(self, prefix: str) -> str:
        """Assemble a single candidate id without any uniqueness check."""
        aid_prefix = self._normalize_prefix(prefix)
        parts = [aid_prefix]

        if self.config.use_timestamp:
            parts.append(self._timestamp_fragment())

        if self.config.use_counter:
            parts.append(self._next_counter_fragment(aid_prefix))

        current_length = len("-".join(parts))
        # One character goes to the separator before the random fill
        remaining = self.config.id_length - current_length - 1
        if remaining > 0:
            parts.append(self._random_string(remaining))

        result = "-".join(parts)
        if len(result) > self.config.id_length:
            result = result[: self.config.id_length]
        return result

    def generate_unique(
        self,
        prefix: str,
        is_unique: Optional[UniquenessCheck] = None
    ) -> str:
        """Generate an id that is new to this session and passes ``is_unique``.

        Args:
            prefix: Registered entity prefix (g, d, f, a, s, p)
            is_unique: Persistence check returning True when the id is free

        Returns:
            The minted id, recorded in the session set

        Raises:
            ValidationError: If the prefix is empty or not registered
            RetryExhaustedError: If no candidate passed within max_retries
        """
        aid_prefix = self._normalize_prefix(prefix)

        for attempt in range(1, self.config.max_retries + 1):
            candidate = self.generate(aid_prefix)

            if candidate in self._used_ids:
                logger.debug("AID %s already minted this session (attempt %d)", candidate, attempt)
                continue

            if self._is_similar_to_existing(candidate):
                logger.debug("AID %s is too close to an id minted this session (attempt %d)", candidate, attempt)
                continue

            if is_unique is not None and not is_unique(candidate):
                logger.debug("AID %s already persisted (attempt %d)", candidate, attempt)
                continue

            self._used_ids.add(candidate)
            return candidate

        raise RetryExhaustedError(
            f"Failed to generate unique AID for prefix '{aid_prefix}' after {self.config.max_retries} attempts",
            prefix=aid_prefix,
            attempts=self.config.max_retries,
        )

    def generate_goal_id(self, is_unique: Optional[UniquenessCheck] = None) -> str:
        return self.generate_unique("g", is_unique)

    def generate_document_id(self, is_unique: Optional[UniquenessCheck] = None) -> str:
        return self.generate_unique("d", is_unique)

    def generate_file_id(self, is_unique: Optional[UniquenessCheck] = None) -> str:
        return self.generate_unique("f", is_unique)

    def generate_api_id(self, is_unique: Optional[UniquenessCheck] = None) -> str:
        return self.generate_unique("a", is_unique)

    def generate_script_id(self, is_unique: Optional[UniquenessCheck] = None) -> str:
        return self.generate_unique("s", is_unique)

    def generate_prompt_id(self, is_unique: Optional[UniquenessCheck] = None) -> str:
        return self.generate_unique("p", is_unique)

    def is_unique_in_session(self, aid: str) -> bool:
        """Check whether this generator has not minted ``aid`` yet."""
        return aid not in self._used_ids

    def get_counter(self, prefix: str) -> int:
        """Get the current counter value for a prefix."""
        return self._counters.get(prefix, 0)

    def reset_counters(self) -> None:
        """Reset counters for all prefixes."""
        self._counters = {prefix: 0 for prefix in AID_REGISTRY}

    def clear_cache(self) -> None:
        """Forget the ids minted in this session."""
        self._used_ids.clear()

    def update_config(self, **changes: Any) -> None:
        """Update configuration; values are re-validated."""
        self.config = AIDConfig(**{**self.config.model_dump(), **changes})

    def stats(self) -> Dict[str, Any]:
        """Configuration, counters and session cache size."""
        return {
            "config": self.config.model_dump(),
            "counters": dict(self._counters),
            "session_cache_size": len(self._used_ids),
        }

    def _is_similar_to_existing(self, candidate: str) -> bool:
        return any(is_too_similar(candidate, used) for used in self._used_ids)

    def _normalize_prefix(self, prefix: str) -> str:
        if not prefix or not prefix.strip():
            raise ValidationError(
                "Prefix cannot be empty",
                field="prefix",
                expected_format=" | ".join(AID_REGISTRY),
            )

        aid_prefix = prefix.strip().lower()
        if aid_prefix not in AID_REGISTRY:
            raise ValidationError(
                f"Invalid prefix: {prefix}. Valid prefixes: {', '.join(AID_REGISTRY)}",
                field="prefix",
                expected_format=" | ".join(AID_REGISTRY),
            )
        return aid_prefix

    def _timestamp_fragment(self) -> str:
        encoded = to_base36(int(time.time() * 1000))
        return encoded[-TIMESTAMP_WIDTH:].rjust(TIMESTAMP_WIDTH, "0")

    def _next_counter_fragment(self, prefix: str) -> str:
        current = self._counters.get(prefix, 0)
        self._counters[prefix] = (current + 1) % COUNTER_MODULUS
        return to_base36(current % COUNTER_MODULUS).rjust(COUNTER_WIDTH, "0")

    @staticmethod
    def _random_string(length: int) -> str:
        return "".join(secrets.choice(ALPHABET) for _ in range(length))


def is_valid_aid(aid: str) -> bool:
    """Validate AID wire format."""
    if not isinstance(aid, str):
        return False
    return AID_PATTERN.match(aid) is not None


def get_aid_prefix(aid: str) -> Optional[str]:
    """Extract the prefix from an AID, or None if the AID is malformed."""
    if not is_valid_aid(aid):
        return None
    return aid.split("-", 1)[0]


def get_entity_type_description(aid: str) -> str:
    """Human-readable entity type for an AID."""
    prefix = get_aid_prefix(aid)
    if not prefix:
        return "Unknown"
    return AID_REGISTRY.get(prefix, "Unknown")


def parse_aid(aid: str) -> Optional[Dict[str, str]]:
    """Split an AID into its components.

    Bodies are ambiguous once truncated, so this is best effort: a four
    character first segment followed by more segments is read as a
    timestamp, a following short segment as the counter, and whatever
    remains as the random fill.
    """
    if not is_valid_aid(aid):
        return None

    prefix, _, body = aid.partition("-")
    segments = body.split("-")
    result: Dict[str, str] = {"prefix": prefix}

    if len(segments) == 1:
        result["random"] = segments[0]
        return result

    index = 0
    if len(segments[0]) == TIMESTAMP_WIDTH:
        result["timestamp"] = segments[0]
        index = 1

    if index < len(segments) - 1 and len(segments[index]) == COUNTER_WIDTH:
        result["counter"] = segments[index]
        index += 1

    remainder = "-".join(s for s in segments[index:] if s)
    if remainder:
        result["random"] = remainder
    return result
