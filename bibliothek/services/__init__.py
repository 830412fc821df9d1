"""HTTP transport and REST resource clients."""
