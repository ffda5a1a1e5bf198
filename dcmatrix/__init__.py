"""
Data Center Matrix Calculator
=============================

Deterministic estimation engine for data center designs with:
- Electrical sizing (busbars, tap-off boxes, rPDUs)
- Cooling sizing (air, direct liquid, hybrid, immersion)
- UPS, battery and generator sizing
- Capital/operating cost, reliability tier, sustainability and carbon metrics
- Site climate adjustment of the cooling plant
- Design comparisons, recommendations and a constrained optimizer

Every result passes through a self-healing validation layer that rebuilds
missing or corrupted fields from the same formulas the engine uses.

Architecture:
- params/: Calculation parameter models, defaults and storage
- sizing/: Shared engineering and cost formulas
- validation/: Input validator, result validator and default synthesis
- calculator.py: Engine entry point (input -> result)
- analysis.py: What-if comparisons and optimization over the engine
- safe_access.py: Nested-path helpers used by the repair schema
- diagnostics.py: Injectable diagnostic sinks
"""

__version__ = "1.0.0"
