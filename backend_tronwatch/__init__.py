"""
Backend Tronwatch: TRON resource-delegation event pipeline.

Observes delegate/reclaim resource transactions, detects whale and pool
activity, rolls raw events into time-series summaries, and serves sampled
views over HTTP and a WebSocket room channel.
"""

__version__ = "0.1.0"
