"""
RIT Adaptive Assessment Core

This package implements computer-adaptive assessments scored on the RIT scale:
1. Item selection nearest a target difficulty, widening to the whole pool
2. Difficulty adjustment by a random step after every answer
3. Per-student session state with serialized updates
4. A durable response ledger from which the final RIT score is computed
"""

__version__ = "0.1.0"
