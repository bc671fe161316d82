"""
FastAPI integration
"""

from x402_core.fastapi.middleware import FastAPIRequestAdapter, X402Middleware, x402_protected

__all__ = ["FastAPIRequestAdapter", "X402Middleware", "x402_protected"]
