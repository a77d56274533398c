"""
Core dispatch protocol.

Modules:
- config: defaults, environment overrides, settings snapshot.
- observability: logging schema and message correlation.
- errors: error codes and retryability.
- validation: name, key, value and config checks.
- envelope: success / error response shapes.
- message: per-call message construction and action parsing.
- capability: capability interface.
- capability_registry: domain -> capability mapping.
- timeout_policy: timeout racing and retry with backoff.
- dispatcher: top-level entry point.
"""
