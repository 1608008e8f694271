"""
entitycaps - XMPP Entity Capabilities Discovery

Resolves capability fingerprints (XEP-0115 node + verification string)
advertised by peers into full feature sets, issuing at most one discovery
query per fingerprint no matter how many peers advertise it.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- capability: Fingerprint, announcement and capability set models
- features: Raw feature identifier to named flag translation
- cache: Write-once capability and extension caches
- transport: Outbound discovery query contract and in-memory outbox
- tracker: In-flight query coalescing and response correlation
- ledger: Per-peer readiness bookkeeping
- diagnostics: Discarded, failed and starved request reporting
- coordinator: Orchestration, merge and one-shot emission
- api: REST and SSE interface
"""

__version__ = "1.0.0"
