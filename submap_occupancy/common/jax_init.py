"""
Common JAX Initialization Module.

Initializes JAX once at import time. All other modules should import JAX from
here instead of importing jax directly so that platform selection and x64
precision are configured consistently.

Usage:
    from submap_occupancy.common.jax_init import jax, jnp
"""

from __future__ import annotations

import os

# Grid filters are small integer kernels; CPU is the default platform.
# Must be set before importing JAX.
os.environ.setdefault("JAX_PLATFORMS", "cpu")
os.environ.setdefault("XLA_PYTHON_CLIENT_PREALLOCATE", "false")

import jax
import jax.numpy as jnp

# Window sums are accumulated in int64.
jax.config.update("jax_enable_x64", True)

__all__ = ["jax", "jnp"]
