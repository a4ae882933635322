"""
ScanGate - Incremental rule-based source scanner for CI pipelines

An enforcement-oriented lint scanner that:
- Evaluates regex lint rules from a rule database against a source tree
- Scans files concurrently with a bounded worker pool
- Skips unchanged files through a content-hash cache
- Suppresses accepted findings through a baseline snapshot
- Reports as a table, JSON, SARIF, or GitHub Actions annotations

Copyright (c) 2026 ScanGate Contributors
Licensed under the Apache License 2.0
"""

__version__ = "1.0.0"
__author__ = "ScanGate Contributors"


__all__ = [
    "__version__",
]
