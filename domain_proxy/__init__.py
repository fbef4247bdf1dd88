"""
Custom domain redirect proxy.

Accepts requests on any customer-owned hostname and forwards them to a
single URL-shortener backend, telling the backend which hostname was used.
"""
