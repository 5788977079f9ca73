"""
Adapters for the collaborators the hook depends on.

- access_controller: delegated-permission checks before whitelist mutations.
- license_terms: per-unit minting fee lookups.
- kafka_audit: publishes whitelist events for external audit logs.
- base: circuit breaking, latency timing and error mapping shared by the HTTP clients.
"""
