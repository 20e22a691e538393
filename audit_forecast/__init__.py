"""
Audit Forecast - Source Package

Audit-risk anomaly detection and scoring for freelancer and
sole-proprietor bookkeeping.

DESIGN PRINCIPLES:
1. "No data" is never reported as "no change"
2. The scoring pass is pure: same input, same ranking
3. Collaborator failures degrade, they do not abort
4. Every forecast run is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Audit Forecast Team"
