# =============================================================================
# File: tests/fakes/call_tracking.py
# Description: Call recording shared by the fake port adapters
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass
class CallRecord:
    """One call made by the clearance core into a port."""
    method: str
    args: tuple
    kwargs: Dict[str, Any]


class CallTrackingFake:
    """
    Base for port fakes: records every call and can be told to fail.

    Usage:
        reference_data.configure_failure("commodity_risk_tier", "tariff service down")
        ...
        assert trader_compliance.get_call_count("compliance_summary") == 1
    """

    def __init__(self):
        self._calls: List[CallRecord] = []
        self._failures: Dict[str, str] = {}  # method -> error message

    def configure_failure(self, method: str, error_message: str) -> None:
        self._failures[method] = error_message

    def get_call_count(self, method: str) -> int:
        return len(self.get_calls(method))

    def get_calls(self, method: str) -> List[CallRecord]:
        return [c for c in self._calls if c.method == method]

    def _record_call(self, method: str, *args, **kwargs) -> None:
        self._calls.append(CallRecord(method=method, args=args, kwargs=kwargs))

    def _check_failure(self, method: str) -> None:
        if method in self._failures:
            raise RuntimeError(self._failures[method])
