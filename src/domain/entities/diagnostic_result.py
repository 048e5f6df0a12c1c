"""Diagnostic test result entity."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DiagnosticResult:
    """Outcome of one numeric assumption check on a set of residuals."""

    test: str  # 'breusch_pagan', 'shapiro_wilk', 'durbin_watson', 'ljung_box'
    statistic: Optional[float]
    p_value: Optional[float]
    passed: Optional[bool]  # None when the test could not run
    n_obs: int
    stratum: str = "ALL"
    note: str = ""

    @property
    def skipped(self) -> bool:
        return self.passed is None

    def to_dict(self) -> dict:
        return {
            "stratum": self.stratum,
            "test": self.test,
            "statistic": self.statistic,
            "p_value": self.p_value,
            "passed": self.passed,
            "n_obs": self.n_obs,
            "note": self.note,
        }
