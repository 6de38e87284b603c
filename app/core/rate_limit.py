"""
Per-IP request limits for the analysis routes.

Each analysis spends Sightengine operations, and each video also spends
Cloudinary bandwidth, so one client must not be able to drain the quota.
Limits are read from settings (`rate_limit_analyze`, `rate_limit_video`) and
counted in process memory; a multi-worker deploy counts per worker.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
