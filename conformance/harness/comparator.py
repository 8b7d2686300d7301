"""
Result comparison logic for Cofre conformance testing.

Every implementation returns an outcome dict with ``success``,
``error_code``, ``state_digest`` and (optionally) ``logs``. Outcomes are
compared field by field against the reference implementation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config import PYTHON_SPEC_CLIENT

EXPECTED = "vector"

# (field, default when absent, divergence details)
_OUTCOME_FIELDS = (
    ("success", True, None),
    ("error_code", 0, None),
    ("state_digest", None, "State digest mismatch after execution"),
    ("logs", None, "Program log lines differ"),
)
# Digests and program logs are optional for HTTP implementations.
_OPTIONAL_FIELDS = {"state_digest", "logs"}


@dataclass
class Divergence:
    """A field on which an implementation disagrees with the reference."""
    field: str
    expected: Any
    actual: Any
    client: str
    reference_client: str
    vector_name: str
    details: Optional[str] = None


@dataclass
class ComparisonResult:
    """Result of comparing outcomes from several implementations."""
    success: bool
    divergences: List[Divergence]
    clients_compared: List[str]

    @property
    def has_divergences(self) -> bool:
        return len(self.divergences) > 0


class ResultComparator:
    """Compares instruction outcomes across implementations."""

    def __init__(self, reference_client: str = PYTHON_SPEC_CLIENT):
        self.reference_client = reference_client

    def compare_results(
        self,
        results: Dict[str, Dict[str, Any]],
        vector_name: str,
    ) -> ComparisonResult:
        """Compare every client outcome against the reference outcome."""
        clients = list(results.keys())
        if self.reference_client not in results:
            raise ValueError(
                f"Reference client '{self.reference_client}' not in results"
            )
        reference = results[self.reference_client]

        divergences: List[Divergence] = []
        for client, result in results.items():
            if client == self.reference_client:
                continue
            divergences.extend(
                self._compare_single(reference, result, client, self.reference_client, vector_name)
            )

        return ComparisonResult(
            success=not divergences,
            divergences=divergences,
            clients_compared=clients,
        )

    def compare_expected(
        self,
        expected: Dict[str, Any],
        actual: Dict[str, Any],
        vector_name: str,
    ) -> ComparisonResult:
        """Compare the reference outcome with the expectations recorded in a vector."""
        divergences = self._compare_single(
            expected, actual, self.reference_client, EXPECTED, vector_name
        )
        return ComparisonResult(
            success=not divergences,
            divergences=divergences,
            clients_compared=[EXPECTED, self.reference_client],
        )

    def _compare_single(
        self,
        reference: Dict[str, Any],
        actual: Dict[str, Any],
        client: str,
        reference_client: str,
        vector_name: str,
    ) -> List[Divergence]:
        divergences = []

        def _diverged(field: str, expected: Any, got: Any, details: Optional[str] = None) -> None:
            divergences.append(Divergence(
                field=field,
                expected=expected,
                actual=got,
                client=client,
                reference_client=reference_client,
                vector_name=vector_name,
                details=details,
            ))

        for name, default, details in _OUTCOME_FIELDS:
            want = reference.get(name, default)
            got = actual.get(name, default)
            if name in _OPTIONAL_FIELDS and (want is None or got is None):
                continue
            if want != got:
                if name == "error_code":
                    details = f"Error code mismatch: expected 0x{want:04x}, got 0x{got:04x}"
                _diverged(name, want, got, details)

        return divergences

    def compare_state_digests(
        self,
        digests: Dict[str, str],
        vector_name: str,
    ) -> ComparisonResult:
        """Check every implementation loaded the same pre-state."""
        clients = list(digests.keys())
        reference_digest = digests.get(self.reference_client)
        if not reference_digest:
            raise ValueError(
                f"Reference client '{self.reference_client}' not in digests"
            )

        divergences = [
            Divergence(
                field="state_digest",
                expected=reference_digest,
                actual=digest,
                client=client,
                reference_client=self.reference_client,
                vector_name=vector_name,
                details="Pre-state digest mismatch",
            )
            for client, digest in digests.items()
            if client != self.reference_client and digest != reference_digest
        ]
        return ComparisonResult(
            success=not divergences,
            divergences=divergences,
            clients_compared=clients,
        )
