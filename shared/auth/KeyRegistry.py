"""Static bearer-token registry.

Writer tokens come from API_KEY_WRITER plus the legacy single-key API_KEY
setting; reader tokens come from API_KEY_READER. Each setting may hold several
tokens separated by commas or newlines.
"""

import re

from pydantic import BaseModel, ConfigDict

from shared.auth.Role import Role
from shared.helper.HelperConfig import HelperConfig

_KEY_SPLIT = re.compile(r"[\n,]")


def parse_key_list(raw: str | None) -> list[str]:
    """Split a raw key setting into trimmed, non-empty tokens.

    Args:
        raw (str | None): The configured value, e.g. "key-a, key-b\\nkey-c".

    Returns:
        list[str]: The tokens in configuration order.
    """
    if not raw:
        return []
    return [value.strip() for value in _KEY_SPLIT.split(raw) if value.strip()]


class KeyRegistry(BaseModel):
    """Immutable view of the configured writer and reader tokens.

    The two sets may overlap; writer membership always wins in ``classify``.
    """

    model_config = ConfigDict(frozen=True)

    writer_keys: frozenset[str] = frozenset()
    reader_keys: frozenset[str] = frozenset()

    @classmethod
    def from_raw(
        cls,
        writer: str | None = None,
        reader: str | None = None,
        legacy: str | None = None,
    ) -> "KeyRegistry":
        """Build a registry from raw setting values."""
        return cls(
            writer_keys=frozenset([*parse_key_list(writer), *parse_key_list(legacy)]),
            reader_keys=frozenset(parse_key_list(reader)),
        )

    @classmethod
    def from_config(cls, helper_config: HelperConfig) -> "KeyRegistry":
        """Build a registry from API_KEY_WRITER, API_KEY_READER and the legacy API_KEY."""
        return cls.from_raw(
            writer=helper_config.get_string_val("API_KEY_WRITER", default=""),
            reader=helper_config.get_string_val("API_KEY_READER", default=""),
            legacy=helper_config.get_string_val("API_KEY", default=""),
        )

    @property
    def is_empty(self) -> bool:
        return not self.writer_keys and not self.reader_keys

    def classify(self, token: str | None) -> Role:
        """Classify a bearer token.

        Args:
            token (str | None): The token presented by the caller.

        Returns:
            Role: WRITER if the token is a writer key, READER if it is only a
                reader key, NONE otherwise. An empty registry classifies every
                token as NONE.
        """
        if not token:
            return Role.NONE
        if token in self.writer_keys:
            return Role.WRITER
        if token in self.reader_keys:
            return Role.READER
        return Role.NONE
