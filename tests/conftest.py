"""Test configuration — ensure rehab_coverage is importable without installing."""
import sys
from pathlib import Path

# Add project root to path so `from rehab_coverage.xxx import` works
sys.path.insert(0, str(Path(__file__).parent.parent))
