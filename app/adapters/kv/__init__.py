"""Key-value store adapters.

The limiter only needs ``get`` and ``put``-with-TTL, so any store offering
those two calls (Redis, an edge KV namespace, an in-process dict) can back
it. Adapters translate backend failures into ``StoreReadError`` and
``StoreWriteError``.
"""
