"""
HTTP layer

Responsibilities:
- Exposes report endpoints
- Maps request headers, cookies and query parameters onto report descriptors
- Maps reporting errors onto HTTP status codes

Never: Contains rendering logic
"""
