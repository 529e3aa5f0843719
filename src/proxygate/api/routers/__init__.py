"""
proxygate.api.routers

Router package: health probes, principal commands, token issuance.
"""
