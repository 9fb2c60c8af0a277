"""Rehab Coverage — adherence scoring for prescribed rehab exercises."""
from rehab_coverage.config import COVERAGE_CONSTANTS, CoverageConfig
from rehab_coverage.coverage import build_coverage_data

__all__ = ["COVERAGE_CONSTANTS", "CoverageConfig", "build_coverage_data"]
