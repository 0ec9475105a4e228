"""Bucket key derivation.

Keys must be identical across processes for the same (scope, second), so
they are built from the inputs alone: ``{prefix}:{scope}:{epoch_second}``.
"""

from __future__ import annotations


def build_bucket_key(prefix: str, scope: str, epoch_second: int) -> str:
    """Return the store key of the bucket for ``scope`` at ``epoch_second``."""
    return f"{prefix}:{scope}:{epoch_second}"


def window_keys(prefix: str, scope: str, now_sec: int, window_sec: int) -> list[str]:
    """Keys of the ``window_sec`` buckets ending at ``now_sec``, newest first."""
    return [build_bucket_key(prefix, scope, now_sec - offset) for offset in range(window_sec)]
