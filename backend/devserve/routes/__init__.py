# Routes package init
"""
DevServe — Routes Package
===========================

Route Inventory:
    - sse.py:      GET /sse          (live-reload event stream)
    - updater.py:  GET /updater.js   (live-reload browser client)
    - health.py:   GET /health       (service health check)

Vendor assets are served by VendorMiddleware, not a route, because a file
name missing from the allow-list has to fall through to the next step.
"""
