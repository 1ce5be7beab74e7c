# Services package init
"""
DevServe — Services Layer
===========================

Process-local state owned by one running server, constructed in
create_app() and injected into middleware and routes:

    - FixedWindowRateLimiter: per-client request counters
    - ReloadBroadcaster:      open live-reload channels
    - watch_static_files:     file changes → reload broadcast
    - VendorAllowList / VendorCache: allow-listed CDN asset proxy
"""
