# ========================
# src/flightdelay/__init__.py
# ========================

"""
Flight Delay Dashboard Pipeline

Batch job that turns raw flight-delay records into the airline performance,
monthly trends and yearly overview tables behind the delay dashboard.
"""

__version__ = "1.0.0"
