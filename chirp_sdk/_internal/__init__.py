"""Internal modules for Chirp SDK.

These are not intended for direct use in application code.

Modules:
    transport - httpx transport (token handshake, buffered and streamed requests)
    http - Shared HTTP client configuration
    redaction - Secret masking for debug output
"""
