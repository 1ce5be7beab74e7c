# Middleware package init
"""
DevServe — Middleware Package
===============================

Middleware Chain (order matters!):
    Request → [Request ID] → [Access Log] → [Timing] → [Security Headers]
            → [Bot Shield] → [Vendor] → Route Handler

    1. Request ID first: every later log line can carry it
    2. Access log wraps timing so X-Response-Time is present when it logs,
       and wraps the shield so it can skip blocked requests
    3. Security headers wrap the shield and vendor steps so their
       short-circuit responses are hardened too
    4. Bot shield before vendor: probes and floods never reach the CDN proxy
"""
