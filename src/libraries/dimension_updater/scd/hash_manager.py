"""
Hash management utilities for SCD processing.
"""

from datetime import date
from typing import Any, List, Mapping
import hashlib
import logging

from ..common.config import DimensionConfig

logger = logging.getLogger(__name__)

_NULL_TOKEN = "\x00NULL\x00"
_SEPARATOR = "|"


class HashManager:
    """Manages hash computation for versioned attributes and surrogate keys."""

    def __init__(self, config: DimensionConfig):
        """
        Initialize HashManager with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config
        self.hash_algorithm = config.hash_algorithm.lower()

        # Validate hash algorithm
        if self.hash_algorithm not in ["sha256", "md5"]:
            raise ValueError(f"Unsupported hash algorithm: {self.hash_algorithm}")

    def _digest(self, parts: List[Any]) -> str:
        payload = _SEPARATOR.join(
            _NULL_TOKEN if part is None else str(part) for part in parts
        )
        if self.hash_algorithm == "sha256":
            return hashlib.sha256(payload.encode("utf-8")).hexdigest()
        return hashlib.md5(payload.encode("utf-8")).hexdigest()

    def compute_scd_hash(self, attributes: Mapping[str, Any]) -> str:
        """
        Compute SCD hash over the VERSION attributes.

        Args:
            attributes: Attribute values of a record

        Returns:
            Hex digest of the versioned attribute values in policy order
        """
        hash_columns = self.get_hash_columns()
        return self._digest([attributes.get(name) for name in hash_columns])

    def compute_surrogate_key(self, business_key: Any, effective_date: date) -> Any:
        """
        Compute the surrogate key of a new version.

        Args:
            business_key: Business key of the dimension member
            effective_date: Effective start of the version

        Returns:
            Surrogate key from the configured generator, or ``SK_`` followed
            by 16 hex characters derived from the key and date
        """
        if self.config.surrogate_key_generator is not None:
            return self.config.surrogate_key_generator(business_key, effective_date)

        digest = self._digest([business_key, effective_date.isoformat()])
        return f"SK_{digest[:16]}"

    def compare_hashes(self, hash1: str, hash2: str) -> bool:
        """
        Compare two hash values.

        Args:
            hash1: First hash value
            hash2: Second hash value

        Returns:
            True if hashes are equal, False otherwise
        """
        return hash1 == hash2

    def get_hash_columns(self) -> List[str]:
        """
        Get list of attributes used for hash computation.

        Returns:
            List of VERSION attribute names
        """
        return self.config.version_attributes
