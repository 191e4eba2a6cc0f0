"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Schema version, enum tables, watched tables
- exceptions: Custom exception hierarchy
- ingress: Trigger payload parsing and orchestrator input
- auth: Shared-secret authentication for trigger endpoints
"""
