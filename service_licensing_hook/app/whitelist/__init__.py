"""
Whitelist package.

Holds the caller allow-list and the licensing hook built on it.

Modules of interest:
- models: identifiers, whitelist targets, events and API models.
- keys: canonical encoding and hashing of authorization keys.
- store: permission-gated add/remove and public lookups.
- hook: before-mint, before-register-derivative and fee prediction.
- events: best-effort notification fan-out.
- errors: PermissionDenied, AlreadyWhitelisted, NotInWhitelist,
  NotWhitelisted and FeeOverflow.
"""
