"""Storage adapters for sealed workspace credentials.

The service only ever hands these adapters opaque ``nonce:tag:ciphertext``
strings; a database-backed adapter only needs one nullable text column.
"""
