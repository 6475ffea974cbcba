"""
Capex Kernel - capital investment approval core.

Multi-level approval routing for investment requests with:
- Matrix-driven eligibility and level advancement
- One decision per actor per request, enforced atomically at commit
- Investment metrics (NPV, IRR, payback, ROI)
- ROI decay modelling of approval delay
"""

__version__ = "0.1.0"
