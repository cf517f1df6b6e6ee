"""
Application Layer - Use Cases

Contains:
- search: Orchestration, deduplication, scoring and ranking
"""
