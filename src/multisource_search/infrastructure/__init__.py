"""
Infrastructure Layer - External Services

Contains:
- cache: Per-provider TTL result caches
- sources: Provider adapters and their HTTP/Entrez clients
"""
