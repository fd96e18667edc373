"""pyreqwest-cookies - Cookie jar middleware for pyreqwest clients.

Stores cookies received via `Set-Cookie` and sends them back with later requests.

Features:
- Asynchronous and synchronous middlewares (`Client` and `SyncClient`)
- Cookies matched by domain, path, secure flag and expiry, most specific path first
- One jar shared safely by concurrent requests and by middleware clones
- Optional persistence of non-session cookies into a newline-delimited JSON file
- Pluggable cookie engine, standard library `http.cookiejar` rules by default
"""
