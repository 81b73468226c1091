"""
Country proxy application package.

The proxy fronts the public country data API for the globe UI, enforcing:
- Input validation: country names limited to letters, digits, spaces, hyphens
- Rate limiting: per-client fixed window or token buckets, plus an optional
  process-wide bucket in front of the upstream API
- A single deadline per upstream lookup
- Markup stripping on relayed payloads

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.adapters: The fetch gate around the upstream HTTP API.
- app.ratelimit: Token bucket, fixed window and the request check.
- app.domain: Lookup result types and sanitization.
"""
