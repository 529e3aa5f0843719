"""
proxygate.ratelimit

Role-tiered, store-backed rate limiting.
"""

# Package marker.
