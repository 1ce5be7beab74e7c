"""
DevServe — Application Package
================================

What: Request-processing core for a small web server runtime.

Layout:
    ┌──────────────────────────────────────────────┐
    │  middleware/  request pipeline steps          │  ← bot shield, vendor, headers, logging
    ├──────────────────────────────────────────────┤
    │  routes/      /sse · /updater.js · /health    │  ← HTTP concerns only
    ├──────────────────────────────────────────────┤
    │  services/    rate limiter · broadcaster ·    │  ← process-local state, no HTTP
    │               file watcher · vendor cache     │
    └──────────────────────────────────────────────┘
"""

__version__ = "1.0.0"
