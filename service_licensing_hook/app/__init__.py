"""
Licensing Hook Service package for the Licensing Access Layer.

This package gates who may mint license tokens for an IP asset under
specific license terms, and reports the minting fee owed. It provides:

- app.main: API surface for whitelist management, hook entry points and health.
- app.whitelist: Allow-list store, licensing hook, events and error taxonomy.
- app.persistence: In-memory and Redis storage for whitelisted keys.
- app.adapters: Access controller, license terms and Kafka audit clients.

Guidelines:
- Default deny: a minter is whitelisted only after an explicit add.
- Every mutation is permission-gated by the access controller.
- Fee prediction and fee charging share one formula.
"""
