"""Shared type aliases for ccs-rescale."""

from __future__ import annotations

# Server address (host, port).
Address = tuple[str, int]

# Processors per node as reported by ``ccs_getinfo``.
PesPerNode = tuple[int, ...]
