"""JIT-compiled kernels and parallel rasterization."""
